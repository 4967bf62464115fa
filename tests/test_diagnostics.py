from __future__ import annotations

import json
from pathlib import Path

from subzonemap.config import load_config
from subzonemap.context import build_context
from subzonemap.diagnostics import build_join_report, format_join_lines, write_inspection_report
from subzonemap.loader import load_map_sources


def _report(config_path: Path):
    cfg = load_config(config_path)
    sources = load_map_sources(cfg.paths, cfg.data)
    context = build_context(cfg, sources)
    return cfg, build_join_report(sources, context)


def test_join_report_counts_matches(config_path: Path) -> None:
    _, report = _report(config_path)

    assert report.ok
    assert report.summary["boundary_features"] == 3
    assert report.summary["regions_matched"] == 2
    assert report.summary["population_rows_rejected"] == 2
    assert report.unmatched_regions == ["Nowhere"]
    assert report.unused_population_keys == ["TUAS"]
    nowhere = next(r for r in report.regions if r["name"] == "Nowhere")
    assert nowhere["population"] == 0
    assert nowhere["color"] == "#ff0000"


def test_format_join_lines(config_path: Path) -> None:
    _, report = _report(config_path)
    lines = list(format_join_lines(report))

    assert lines[0].startswith("[INFO] Joined 2/3 boundary features")
    assert any("Nowhere" in line and line.startswith("[WARN]") for line in lines)
    assert lines[-1] == "[OK] Population join completed with no errors."


def test_write_inspection_report(config_path: Path, tmp_path: Path) -> None:
    _, report = _report(config_path)

    html_path, json_path = write_inspection_report(report, tmp_path / "reports")

    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["summary"]["regions_unmatched"] == 1
    html = html_path.read_text(encoding="utf-8")
    assert "Downtown Core" in html
    assert "UNMATCHED" in html
