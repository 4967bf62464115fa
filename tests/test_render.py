from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from subzonemap.config import load_config  # noqa: E402
from subzonemap.context import build_context  # noqa: E402
from subzonemap.loader import load_map_sources  # noqa: E402
from subzonemap.render import ChoroplethRenderer  # noqa: E402


def _renderer(config_path: Path, *, fit: str = "window") -> ChoroplethRenderer:
    cfg = load_config(config_path)
    sources = load_map_sources(cfg.paths, cfg.data)
    context = build_context(cfg, sources)
    return ChoroplethRenderer(cfg.render, context, sources.features, fit=fit)


def test_fills_follow_population(config_path: Path) -> None:
    renderer = _renderer(config_path)
    # Domain max is 50000 over three buckets.
    assert renderer.fills == ("#0000ff", "#00ff00", "#ff0000")


def test_render_to_file_writes_png(config_path: Path, tmp_path: Path) -> None:
    renderer = _renderer(config_path)
    output = tmp_path / "out" / "map.png"

    result = renderer.render_to_file(output, width_px=300, height_px=200, dpi=50)

    assert result == output
    assert output.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    assert renderer.context.params.translate == (150.0, 100.0)


def test_hover_query_after_resize(config_path: Path) -> None:
    renderer = _renderer(config_path)

    renderer.viewport.on_resize(300, 200)
    assert renderer.region_at(150, 100) == 0
    description = renderer.describe_at(150, 100)
    assert description is not None
    assert description.tooltip == "Subzone: Downtown Core, Population: 50,000"

    renderer.viewport.on_resize(400, 300)
    assert renderer.context.params.translate == (200.0, 150.0)
    assert renderer.region_at(200, 150) == 0
    assert renderer.describe_at(5, 5) is None


def test_motion_event_highlights_and_shows_tooltip(config_path: Path) -> None:
    renderer = _renderer(config_path)
    renderer.viewport.on_resize(300, 200)
    fig = renderer._create_figure(plt, dpi=50)
    try:
        ax = renderer._ax
        renderer._on_motion(SimpleNamespace(inaxes=ax, xdata=150.0, ydata=100.0))

        assert renderer._tooltip.get_visible()
        assert renderer._tooltip.get_text() == "Subzone: Downtown Core, Population: 50,000"
        assert renderer._patches[0].get_linewidth() == pytest.approx(2.0)

        renderer._on_motion(SimpleNamespace(inaxes=None, xdata=None, ydata=None))

        assert not renderer._tooltip.get_visible()
        assert renderer._patches[0].get_linewidth() == pytest.approx(0.5)
    finally:
        plt.close(fig)


def test_content_fit_sizes_surface_from_content(config_path: Path) -> None:
    renderer = _renderer(config_path, fit="content")

    params = renderer.viewport.on_resize(300, 999)

    state = renderer.viewport.state
    assert state is not None
    assert 40.0 < state.height < 200.0
    assert params.translate == (150.0, state.height / 2.0)


def test_legend_labels_use_configured_format(config_path: Path) -> None:
    with config_path.open("a", encoding="utf-8") as fh:
        fh.write('  legend:\n    label_format: "{:,.0f}"\n')
    renderer = _renderer(config_path)
    renderer.viewport.on_resize(300, 200)
    fig = renderer._create_figure(plt, dpi=50)
    try:
        labels = [text.get_text() for text in renderer._ax.get_legend().get_texts()]
    finally:
        plt.close(fig)

    assert labels == ["0 to 16,667", "16,667 to 33,333", "33,333 to 50,000"]
