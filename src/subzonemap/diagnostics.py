"""Join diagnostics between boundary names and population keys."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Any, Sequence

from .context import MapContext
from .loader import MapSources
from .models import format_population
from .population import duplicate_keys
from .util import format_name_list, write_json

_LOGGER = logging.getLogger("subzonemap.diagnostics")


@dataclass(slots=True)
class JoinReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)
    unmatched_regions: list[str] = field(default_factory=list)
    unused_population_keys: list[str] = field(default_factory=list)
    regions: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "summary": dict(self.summary),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "infos": list(self.infos),
            "unmatched_regions": list(self.unmatched_regions),
            "unused_population_keys": list(self.unused_population_keys),
            "regions": list(self.regions),
        }


def build_join_report(sources: MapSources, context: MapContext) -> JoinReport:
    """Count how many boundary names found a population entry and vice versa."""
    report = JoinReport()
    parsed = sources.population
    dupes = duplicate_keys(parsed.records, context.normalize)

    matched_keys: set[str] = set()
    unmatched: list[str] = []
    for feature in sources.features:
        description = context.describe(feature.name)
        report.regions.append(
            {
                "name": feature.name,
                "key": description.key,
                "population": description.population,
                "matched": description.matched,
                "color": context.scale(description.population),
            }
        )
        if description.matched:
            matched_keys.add(description.key)
        else:
            unmatched.append(feature.name)

    unused = sorted(key for key in context.index if key not in matched_keys)
    report.unmatched_regions = sorted(set(unmatched))
    report.unused_population_keys = unused
    report.summary = {
        "boundary_features": len(sources.features),
        "population_rows": parsed.row_count,
        "population_rows_rejected": len(parsed.rejected),
        "population_keys": len(context.index),
        "duplicate_keys": len(dupes),
        "regions_matched": len(sources.features) - len(unmatched),
        "regions_unmatched": len(unmatched),
        "population_keys_unused": len(unused),
    }

    report.add_info(
        f"Joined {report.summary['regions_matched']}/{len(sources.features)} boundary features "
        f"to {len(context.index)} population keys"
    )
    if not sources.features:
        report.add_error("Boundary file has no usable features")
    if not parsed.records:
        report.add_error("Population table has no usable rows")
    for message in parsed.rejected:
        report.add_warning(f"Rejected population {message}")
    if dupes:
        report.add_warning(f"Duplicate population keys (last row wins): {format_name_list(dupes)}")
    if report.unmatched_regions:
        report.add_warning(
            "Regions without population data (drawn as zero): "
            f"{format_name_list(report.unmatched_regions)}"
        )
    if unused:
        report.add_warning(f"Population keys with no boundary: {format_name_list(unused)}")
    return report


def format_join_lines(report: JoinReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Population join completed with no errors.")
    return lines


def write_inspection_report(report: JoinReport, output_dir: Path) -> tuple[Path, Path]:
    json_path = output_dir / "join_report.json"
    html_path = output_dir / "join_report.html"
    write_json(json_path, report.to_dict())
    _write_html_report(report=report, output_html=html_path)
    _LOGGER.debug("Inspection report written to %s and %s", json_path, html_path)
    return (html_path, json_path)


def _write_html_report(*, report: JoinReport, output_html: Path) -> None:
    summary_rows = [
        f"<tr><th>{escape(name)}</th><td>{value}</td></tr>"
        for name, value in sorted(report.summary.items())
    ]
    region_rows: list[str] = []
    for region in sorted(report.regions, key=lambda r: (r["matched"], str(r["name"]).casefold())):
        status = "matched" if region["matched"] else "unmatched"
        region_rows.append(
            "<tr class='{status}'>"
            "<td><span class='swatch' style='background:{color}'></span></td>"
            "<td>{name}</td><td>{key}</td><td class='num'>{population}</td><td>{status_label}</td>"
            "</tr>".format(
                status=status,
                color=escape(str(region["color"])),
                name=escape(str(region["name"])),
                key=escape(str(region["key"])),
                population=format_population(float(region["population"])),
                status_label=status.upper(),
            )
        )
    issues = [f"<li class='warn'>{escape(msg)}</li>" for msg in report.warnings]
    issues.extend(f"<li class='error'>{escape(msg)}</li>" for msg in report.errors)

    html = "\n".join(
        [
            "<!doctype html>",
            "<html lang='en'>",
            "<head>",
            "  <meta charset='utf-8'>",
            "  <meta name='viewport' content='width=device-width, initial-scale=1'>",
            "  <title>subzonemap join report</title>",
            "  <style>",
            "    body { font-family: Arial, sans-serif; margin: 16px; }",
            "    table { border-collapse: collapse; margin-bottom: 16px; }",
            "    th, td { border: 1px solid #ddd; padding: 4px 8px; text-align: left; }",
            "    td.num { text-align: right; }",
            "    tr.unmatched { color: #b22d2d; }",
            "    li.warn { color: #99610f; }",
            "    li.error { color: #b22d2d; font-weight: 700; }",
            "    .swatch { display: inline-block; width: 18px; height: 12px; border: 1px solid #999; }",
            "  </style>",
            "</head>",
            "<body>",
            "  <h1>Population Join Report</h1>",
            "  <table>",
            *summary_rows,
            "  </table>",
            "  <ul>",
            *issues,
            "  </ul>",
            "  <table>",
            "    <tr><th></th><th>Region</th><th>Key</th><th>Population</th><th>Status</th></tr>",
            *region_rows,
            "  </table>",
            "</body>",
            "</html>",
            "",
        ]
    )
    output_html.parent.mkdir(parents=True, exist_ok=True)
    output_html.write_text(html, encoding="utf-8")
