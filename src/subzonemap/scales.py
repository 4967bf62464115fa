"""Color scales mapping a population value to a display color."""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol, Sequence

from .config import ScaleConfig
from .models import PopulationIndex, format_population


class ColorScale(Protocol):
    def __call__(self, value: float) -> str: ...

    def legend_entries(
        self, *, stops: int = 5, label_format: str | None = None
    ) -> list[tuple[str, str]]: ...


def _clean_value(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return 0.0
    return value


def _format_label(value: float, label_format: str | None) -> str:
    if label_format is None:
        return format_population(value)
    return label_format.format(value)


@dataclass(frozen=True, slots=True)
class QuantizeScale:
    """Equal-width buckets over `[0, domain_max]`, lightest color first.

    A value sitting exactly on an interior bucket boundary belongs to the
    lower bucket; `domain_max` itself belongs to the last bucket.
    """

    domain_max: float
    colors: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.colors:
            raise ValueError("QuantizeScale needs at least one color")
        domain_max = float(self.domain_max)
        if not math.isfinite(domain_max) or domain_max < 0:
            raise ValueError(f"QuantizeScale domain_max must be finite and >= 0, got {self.domain_max!r}")
        object.__setattr__(self, "domain_max", domain_max)
        object.__setattr__(self, "colors", tuple(to_hex_color(c) for c in self.colors))

    @classmethod
    def from_index(cls, index: PopulationIndex, colors: Sequence[str]) -> QuantizeScale:
        return cls(domain_max=index.max_population, colors=tuple(colors))

    @property
    def bucket_count(self) -> int:
        return len(self.colors)

    def bucket_index(self, value: float) -> int:
        value = _clean_value(value)
        k = self.bucket_count
        if self.domain_max <= 0 or value <= 0:
            return 0
        if value >= self.domain_max:
            return k - 1
        position = value * k / self.domain_max
        return min(max(math.ceil(position) - 1, 0), k - 1)

    def thresholds(self) -> tuple[float, ...]:
        k = self.bucket_count
        return tuple(self.domain_max * i / k for i in range(1, k))

    def __call__(self, value: float) -> str:
        return self.colors[self.bucket_index(value)]

    def legend_entries(
        self, *, stops: int = 5, label_format: str | None = None
    ) -> list[tuple[str, str]]:
        bounds = (0.0, *self.thresholds(), self.domain_max)
        entries: list[tuple[str, str]] = []
        for idx, color in enumerate(self.colors):
            low, high = bounds[idx], bounds[idx + 1]
            label = f"{_format_label(low, label_format)} to {_format_label(high, label_format)}"
            entries.append((label, color))
        return entries


@dataclass(frozen=True, slots=True)
class LinearScale:
    """Piecewise-linear RGB interpolation between `(threshold, color)` stops."""

    breakpoints: tuple[tuple[float, str], ...]

    def __post_init__(self) -> None:
        if len(self.breakpoints) < 2:
            raise ValueError("LinearScale needs at least two breakpoints")
        cleaned: list[tuple[float, str]] = []
        previous: float | None = None
        for threshold, color in self.breakpoints:
            value = float(threshold)
            if not math.isfinite(value):
                raise ValueError(f"LinearScale threshold must be finite, got {threshold!r}")
            if previous is not None and value <= previous:
                raise ValueError("LinearScale thresholds must be strictly increasing")
            cleaned.append((value, to_hex_color(color)))
            previous = value
        object.__setattr__(self, "breakpoints", tuple(cleaned))

    @property
    def thresholds(self) -> tuple[float, ...]:
        return tuple(threshold for threshold, _ in self.breakpoints)

    def __call__(self, value: float) -> str:
        value = _clean_value(value)
        thresholds = self.thresholds
        if value <= thresholds[0]:
            return self.breakpoints[0][1]
        if value >= thresholds[-1]:
            return self.breakpoints[-1][1]
        upper = bisect.bisect_right(thresholds, value)
        low_t, low_c = self.breakpoints[upper - 1]
        high_t, high_c = self.breakpoints[upper]
        return interpolate_color(low_c, high_c, (value - low_t) / (high_t - low_t))

    def legend_entries(
        self, *, stops: int = 5, label_format: str | None = None
    ) -> list[tuple[str, str]]:
        low = self.thresholds[0]
        high = self.thresholds[-1]
        count = max(int(stops), 2)
        entries: list[tuple[str, str]] = []
        for idx in range(count):
            value = low + (high - low) * idx / (count - 1)
            entries.append((_format_label(round(value), label_format), self(value)))
        return entries


def build_color_scale(cfg: ScaleConfig, index: PopulationIndex) -> ColorScale:
    """Construct the configured scale; quantize domains come from the index."""
    if cfg.kind == "linear":
        return LinearScale(breakpoints=cfg.breakpoints)
    return QuantizeScale.from_index(index, cfg.colors)


def to_hex_color(color: Any) -> str:
    colors = _require_matplotlib_colors()
    try:
        return str(colors.to_hex(color, keep_alpha=False)).lower()
    except ValueError as exc:
        raise ValueError(f"Invalid color {color!r}") from exc


def interpolate_color(start: str, end: str, fraction: float) -> str:
    colors = _require_matplotlib_colors()
    t = min(max(float(fraction), 0.0), 1.0)
    r0, g0, b0 = colors.to_rgb(start)
    r1, g1, b1 = colors.to_rgb(end)
    mixed = (r0 + (r1 - r0) * t, g0 + (g1 - g0) * t, b0 + (b1 - b0) * t)
    return str(colors.to_hex(mixed)).lower()


@lru_cache(maxsize=1)
def _require_matplotlib_colors() -> Any:
    try:
        import matplotlib.colors as mcolors
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for color parsing") from exc
    return mcolors
