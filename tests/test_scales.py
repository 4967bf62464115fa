from __future__ import annotations

import pytest

from subzonemap.config import ScaleConfig
from subzonemap.models import PopulationIndex
from subzonemap.scales import LinearScale, QuantizeScale, build_color_scale, interpolate_color

RGB = ("#ff0000", "#00ff00", "#0000ff")


def test_quantize_boundary_value_belongs_to_lower_bucket() -> None:
    scale = QuantizeScale(domain_max=90000, colors=RGB)

    assert scale.bucket_index(30000) == 0
    assert scale(30000) == "#ff0000"
    assert scale(30001) == "#00ff00"
    assert scale(60000) == "#00ff00"
    assert scale(90000) == "#0000ff"


def test_quantize_clamps_outside_domain() -> None:
    scale = QuantizeScale(domain_max=90000, colors=RGB)

    assert scale(0) == "#ff0000"
    assert scale(-10) == "#ff0000"
    assert scale(1e9) == "#0000ff"
    assert scale(float("nan")) == "#ff0000"


def test_quantize_is_monotonic() -> None:
    scale = QuantizeScale(domain_max=1000, colors=tuple(f"#0000{i:02x}" for i in range(9)))
    values = [i * 7.3 for i in range(0, 140)]
    buckets = [scale.bucket_index(v) for v in values]
    assert buckets == sorted(buckets)
    assert scale(1000) == scale.colors[-1]


def test_quantize_with_empty_domain_uses_first_color() -> None:
    scale = QuantizeScale(domain_max=0, colors=RGB)
    assert scale(0) == "#ff0000"
    assert scale(500) == "#ff0000"


def test_quantize_legend_entries() -> None:
    scale = QuantizeScale(domain_max=90000, colors=RGB)
    assert scale.legend_entries() == [
        ("0 to 30,000", "#ff0000"),
        ("30,000 to 60,000", "#00ff00"),
        ("60,000 to 90,000", "#0000ff"),
    ]


def test_legend_entries_with_label_format() -> None:
    scale = QuantizeScale(domain_max=90000, colors=RGB)
    assert [label for label, _ in scale.legend_entries(label_format="{:.0f}")] == [
        "0 to 30000",
        "30000 to 60000",
        "60000 to 90000",
    ]

    linear = LinearScale(breakpoints=((0, "white"), (100000, "black")))
    assert linear.legend_entries(stops=3, label_format="{:,} people") == [
        ("0 people", "#ffffff"),
        ("50,000 people", "#808080"),
        ("100,000 people", "#000000"),
    ]


def test_linear_midpoint_is_midpoint_color() -> None:
    scale = LinearScale(breakpoints=((0, "white"), (100000, "black")))
    assert scale(50000) == "#808080"

    multi = LinearScale(breakpoints=((0, "#000000"), (100, "#ff0000"), (200, "#ffffff")))
    assert multi(50) == "#800000"
    assert multi(150) == "#ff8080"


def test_linear_clamps_at_both_ends() -> None:
    scale = LinearScale(breakpoints=((10, "white"), (20, "black")))
    assert scale(0) == "#ffffff"
    assert scale(10) == "#ffffff"
    assert scale(20) == "#000000"
    assert scale(1e12) == "#000000"


@pytest.mark.parametrize(
    "breakpoints",
    [((0, "white"),), ((0, "white"), (0, "black")), ((10, "white"), (5, "black"))],
)
def test_linear_rejects_bad_breakpoints(breakpoints) -> None:
    with pytest.raises(ValueError):
        LinearScale(breakpoints=breakpoints)


def test_invalid_color_is_rejected() -> None:
    with pytest.raises(ValueError, match="Invalid color"):
        QuantizeScale(domain_max=1, colors=("not-a-color",))


def test_interpolate_color_clamps_fraction() -> None:
    assert interpolate_color("#000000", "#ffffff", 2.0) == "#ffffff"
    assert interpolate_color("#000000", "#ffffff", -1.0) == "#000000"


def test_build_color_scale_uses_index_max_for_quantize() -> None:
    index = PopulationIndex({"A": 10.0, "B": 90.0})
    cfg = ScaleConfig(kind="quantize", colors=RGB, breakpoints=())

    scale = build_color_scale(cfg, index)

    assert isinstance(scale, QuantizeScale)
    assert scale.domain_max == 90.0


def test_build_color_scale_linear() -> None:
    cfg = ScaleConfig(kind="linear", colors=RGB, breakpoints=((0.0, "white"), (10.0, "black")))
    scale = build_color_scale(cfg, PopulationIndex({}))
    assert isinstance(scale, LinearScale)
    assert scale(5) == "#808080"
