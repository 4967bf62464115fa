"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


_SCALE_KINDS = {"quantize", "linear"}
_FIT_MODES = {"window", "content"}
_NORMALIZATION_RULES = {"upper", "casefold", "exact"}

DEFAULT_PALETTE: tuple[str, ...] = (
    "#E0D4F3",
    "#D0B0E4",
    "#C28FDE",
    "#A875D1",
    "#9A62C8",
    "#8C4FBA",
    "#7E3CA7",
    "#6E2894",
    "#5F157C",
)


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_str(item, f"{field_name}[{idx}]"))
    return tuple(out)


def _choice(value: Any, field_name: str, allowed: set[str]) -> str:
    chosen = _str(value, field_name).casefold()
    if chosen not in allowed:
        raise ValueError(f"{field_name} must be one of: " + ", ".join(sorted(allowed)))
    return chosen


def is_remote_source(source: str) -> bool:
    return source.casefold().startswith(("http://", "https://"))


def _source_from_cfg(value: Any, field_name: str, root_dir: Path) -> str:
    """Resolve a data source: URLs are kept verbatim, paths made absolute."""
    raw = _str(value, field_name)
    if is_remote_source(raw):
        return raw
    p = Path(raw)
    return str(p if p.is_absolute() else root_dir / p)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    boundaries: str
    population: str
    output_image: Path
    reports_dir: Path
    logs_dir: Path

    @property
    def local_sources(self) -> tuple[Path, ...]:
        return tuple(
            Path(source)
            for source in (self.boundaries, self.population)
            if not is_remote_source(source)
        )

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_image.parent, self.reports_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            boundaries=_source_from_cfg(raw.get("boundaries"), "paths.boundaries", root_dir),
            population=_source_from_cfg(raw.get("population"), "paths.population", root_dir),
            output_image=_path_from_cfg(raw.get("output_image"), "paths.output_image", root_dir),
            reports_dir=_path_from_cfg(raw.get("reports_dir"), "paths.reports_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class DataConfig:
    region_property: str
    csv_region_column: str
    csv_population_column: str
    key_normalization: str
    request_timeout_s: float
    user_agent: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DataConfig:
        timeout = _float(raw.get("request_timeout_s", 30.0), "data.request_timeout_s")
        if timeout <= 0:
            raise ValueError("data.request_timeout_s must be > 0")
        return cls(
            region_property=_str(raw.get("region_property"), "data.region_property"),
            csv_region_column=_str(raw.get("csv_region_column"), "data.csv_region_column"),
            csv_population_column=_str(
                raw.get("csv_population_column"), "data.csv_population_column"
            ),
            key_normalization=_choice(
                raw.get("key_normalization", "upper"),
                "data.key_normalization",
                _NORMALIZATION_RULES,
            ),
            request_timeout_s=timeout,
            user_agent=_str(raw.get("user_agent", "subzonemap/0.1"), "data.user_agent"),
        )


@dataclass(frozen=True, slots=True)
class ScaleConfig:
    kind: str
    colors: tuple[str, ...]
    breakpoints: tuple[tuple[float, str], ...]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ScaleConfig:
        kind = _choice(raw.get("kind", "quantize"), "scale.kind", _SCALE_KINDS)
        colors_raw = raw.get("colors")
        colors = DEFAULT_PALETTE if colors_raw is None else _str_list(colors_raw, "scale.colors")

        breakpoints_raw = raw.get("breakpoints", [])
        if breakpoints_raw is None:
            breakpoints_raw = []
        if not isinstance(breakpoints_raw, list):
            raise ValueError("Expected list for 'scale.breakpoints'")
        breakpoints: list[tuple[float, str]] = []
        for idx, item in enumerate(breakpoints_raw):
            if not isinstance(item, list) or len(item) != 2:
                raise ValueError(f"Invalid scale.breakpoints[{idx}]: expected [threshold, color]")
            threshold = _float(item[0], f"scale.breakpoints[{idx}][0]")
            color = _str(item[1], f"scale.breakpoints[{idx}][1]")
            breakpoints.append((threshold, color))

        if kind == "quantize" and not colors:
            raise ValueError("scale.colors must not be empty for a quantize scale")
        if kind == "linear" and len(breakpoints) < 2:
            raise ValueError("scale.breakpoints needs at least two entries for a linear scale")
        return cls(kind=kind, colors=colors, breakpoints=tuple(breakpoints))


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    center: tuple[float, float]
    scale: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        center_raw = raw.get("center")
        if not isinstance(center_raw, list) or len(center_raw) != 2:
            raise ValueError("Expected [lon, lat] list for 'projection.center'")
        lon = _float(center_raw[0], "projection.center[0]")
        lat = _float(center_raw[1], "projection.center[1]")
        if lon < -180.0 or lon > 180.0:
            raise ValueError("projection.center lon must be between -180 and 180")
        if lat < -85.0 or lat > 85.0:
            raise ValueError("projection.center lat must be between -85 and 85")
        scale = _float(raw.get("scale"), "projection.scale")
        if scale <= 0:
            raise ValueError("projection.scale must be > 0")
        return cls(center=(lon, lat), scale=scale)


@dataclass(frozen=True, slots=True)
class ViewportConfig:
    width_px: int
    height_px: int
    dpi: int
    fit: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ViewportConfig:
        width_px = _int(raw.get("width_px"), "viewport.width_px")
        height_px = _int(raw.get("height_px"), "viewport.height_px")
        dpi = _int(raw.get("dpi", 100), "viewport.dpi")
        if width_px <= 0 or height_px <= 0:
            raise ValueError("viewport.width_px and viewport.height_px must be > 0")
        if dpi <= 0:
            raise ValueError("viewport.dpi must be > 0")
        return cls(
            width_px=width_px,
            height_px=height_px,
            dpi=dpi,
            fit=_choice(raw.get("fit", "window"), "viewport.fit", _FIT_MODES),
        )


@dataclass(frozen=True, slots=True)
class LegendConfig:
    loc: str
    title: str
    label_format: str | None
    linear_stops: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> LegendConfig:
        linear_stops = _int(raw.get("linear_stops", 5), "render.legend.linear_stops")
        if linear_stops < 2:
            raise ValueError("render.legend.linear_stops must be >= 2")
        label_format = raw.get("label_format")
        if label_format is not None:
            label_format = _str(label_format, "render.legend.label_format")
            try:
                label_format.format(1.0)
            except (IndexError, KeyError, ValueError) as exc:
                raise ValueError(
                    f"render.legend.label_format is not a valid format string: {label_format!r}"
                ) from exc
        return cls(
            loc=_str(raw.get("loc", "upper right"), "render.legend.loc"),
            title=_str(raw.get("title", "Population"), "render.legend.title"),
            label_format=label_format,
            linear_stops=linear_stops,
        )

    @classmethod
    def default(cls) -> LegendConfig:
        return cls.from_mapping({})


@dataclass(frozen=True, slots=True)
class RenderConfig:
    title: str
    background: str
    format: str
    stroke_color: str
    stroke_width: float
    hover_stroke_color: str
    hover_stroke_width: float
    font_size: int
    legend: LegendConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        legend_raw = raw.get("legend")
        legend = (
            LegendConfig.default()
            if legend_raw is None
            else LegendConfig.from_mapping(_mapping(legend_raw, "render.legend"))
        )
        return cls(
            title=_str(raw.get("title", "Singapore population by subzone"), "render.title"),
            background=_str(raw.get("background", "white"), "render.background"),
            format=_str(raw.get("format", "png"), "render.format"),
            stroke_color=_str(raw.get("stroke_color", "#ffffff"), "render.stroke_color"),
            stroke_width=_float(raw.get("stroke_width", 0.5), "render.stroke_width"),
            hover_stroke_color=_str(
                raw.get("hover_stroke_color", "black"), "render.hover_stroke_color"
            ),
            hover_stroke_width=_float(
                raw.get("hover_stroke_width", 2.0), "render.hover_stroke_width"
            ),
            font_size=_int(raw.get("font_size", 10), "render.font_size"),
            legend=legend,
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    data: DataConfig
    scale: ScaleConfig
    projection: ProjectionConfig
    viewport: ViewportConfig
    render: RenderConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            data=DataConfig.from_mapping(_mapping(raw.get("data"), "data")),
            scale=ScaleConfig.from_mapping(_mapping(raw.get("scale", {}), "scale")),
            projection=ProjectionConfig.from_mapping(
                _mapping(raw.get("projection"), "projection")
            ),
            viewport=ViewportConfig.from_mapping(_mapping(raw.get("viewport"), "viewport")),
            render=RenderConfig.from_mapping(_mapping(raw.get("render", {}), "render")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
