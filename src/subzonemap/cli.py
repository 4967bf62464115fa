"""CLI entrypoint for the subzone population choropleth."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .context import MapContext, build_context
from .diagnostics import JoinReport, build_join_report, format_join_lines, write_inspection_report
from .loader import DataLoadError, MapSources, load_map_sources
from .render import ChoroplethRenderer
from .util import ensure_directories, setup_logging

LOGGER = logging.getLogger("subzonemap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subzonemap",
        description="Singapore subzone population choropleth.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    def add_size(p: argparse.ArgumentParser) -> None:
        p.add_argument("--width", type=int, default=None, help="Override viewport width in pixels.")
        p.add_argument("--height", type=int, default=None, help="Override viewport height in pixels.")

    validate_p = subparsers.add_parser("validate", help="Load both inputs and check the join.")
    add_common(validate_p)

    render_p = subparsers.add_parser("render", help="Render the map to an image file.")
    add_common(render_p)
    add_size(render_p)
    render_p.add_argument(
        "--output",
        default=None,
        help="Output image path (defaults to paths.output_image).",
    )

    show_p = subparsers.add_parser("show", help="Open an interactive map window.")
    add_common(show_p)
    add_size(show_p)

    inspect_p = subparsers.add_parser(
        "inspect",
        help="Write JSON + HTML join diagnostics (matched and unmatched subzones).",
    )
    add_common(inspect_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "subzonemap.log"
    setup_logging(log_path, verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _prepare(cfg: AppConfig) -> tuple[MapSources, MapContext, JoinReport]:
    sources = load_map_sources(cfg.paths, cfg.data)
    context = build_context(cfg, sources)
    report = build_join_report(sources, context)
    for line in format_join_lines(report):
        LOGGER.info(line)
    return (sources, context, report)


def _run_validate(cfg: AppConfig) -> int:
    missing = [path for path in cfg.paths.local_sources if not path.exists()]
    for path in missing:
        LOGGER.error("Missing input file: %s", path)
    if missing:
        return 1
    _, _, report = _prepare(cfg)
    return 0 if report.ok else 1


def _make_renderer(cfg: AppConfig) -> ChoroplethRenderer | None:
    sources, context, report = _prepare(cfg)
    if not report.ok:
        LOGGER.error("Rendering aborted due to join errors.")
        return None
    return ChoroplethRenderer(cfg.render, context, sources.features, fit=cfg.viewport.fit)


def _run_render(
    cfg: AppConfig,
    *,
    output: str | None,
    width: int | None,
    height: int | None,
) -> int:
    renderer = _make_renderer(cfg)
    if renderer is None:
        return 1
    output_path = Path(output).resolve() if output else cfg.paths.output_image
    renderer.render_to_file(
        output_path,
        width_px=width or cfg.viewport.width_px,
        height_px=height or cfg.viewport.height_px,
        dpi=cfg.viewport.dpi,
    )
    return 0


def _run_show(cfg: AppConfig, *, width: int | None, height: int | None) -> int:
    renderer = _make_renderer(cfg)
    if renderer is None:
        return 1
    renderer.show(
        width_px=width or cfg.viewport.width_px,
        height_px=height or cfg.viewport.height_px,
        dpi=cfg.viewport.dpi,
    )
    return 0


def _run_inspect(cfg: AppConfig) -> int:
    _, _, report = _prepare(cfg)
    html_path, json_path = write_inspection_report(report, cfg.paths.reports_dir)
    LOGGER.info("Join HTML report written to %s", html_path)
    LOGGER.info("Join JSON report written to %s", json_path)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    try:
        cfg = _load_and_setup(args)
    except (ValueError, FileNotFoundError) as exc:
        setup_logging(None, verbose=args.verbose)
        LOGGER.error("Invalid configuration: %s", exc)
        return 1
    command = str(args.command)
    try:
        if command == "validate":
            return _run_validate(cfg)
        if command == "render":
            return _run_render(cfg, output=args.output, width=args.width, height=args.height)
        if command == "show":
            return _run_show(cfg, width=args.width, height=args.height)
        if command == "inspect":
            return _run_inspect(cfg)
    except DataLoadError as exc:
        LOGGER.error("%s", exc)
        LOGGER.error("Map not rendered: input data could not be loaded.")
        return 1
    except (ValueError, FileNotFoundError) as exc:
        LOGGER.error("%s", exc)
        LOGGER.error("Map not rendered.")
        return 1
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
