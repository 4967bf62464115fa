"""Domain models shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping


@dataclass(frozen=True, slots=True)
class PopulationRecord:
    """One parsed row of the population table."""

    region_key: str
    population: float
    row_number: int | None = None


@dataclass(frozen=True, slots=True)
class PopulationIndex:
    """Read-only lookup of population by normalized region key."""

    entries: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def get(self, key: str, default: float = 0.0) -> float:
        return self.entries.get(key, default)

    def keys(self) -> tuple[str, ...]:
        return tuple(self.entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    @property
    def max_population(self) -> float:
        return max(self.entries.values(), default=0.0)


@dataclass(frozen=True, slots=True)
class RegionFeature:
    """Boundary polygon with its raw region name."""

    name: str
    geometry: Any


@dataclass(frozen=True, slots=True)
class ProjectionParams:
    """Mercator parameters: lon/lat center, pixels per radian, pixel offset."""

    center: tuple[float, float]
    scale: float
    translate: tuple[float, float]

    def with_translate(self, x: float, y: float) -> ProjectionParams:
        return ProjectionParams(center=self.center, scale=self.scale, translate=(float(x), float(y)))


@dataclass(frozen=True, slots=True)
class RegionDescription:
    """Tooltip payload for a hovered region."""

    name: str
    key: str
    population: float
    matched: bool

    @property
    def tooltip(self) -> str:
        return f"Subzone: {self.name}, Population: {format_population(self.population)}"


def format_population(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"
