"""Region classification: population lookup and color resolution."""

from __future__ import annotations

from .keys import KeyNormalizer, normalize_region_key
from .models import PopulationIndex, RegionDescription
from .scales import ColorScale


def resolve_population(
    index: PopulationIndex,
    raw_region_key: str,
    normalize: KeyNormalizer = normalize_region_key,
) -> float:
    """Population for a raw region name; regions without data count as zero."""
    return index.get(normalize(raw_region_key), 0.0)


def color_for(
    index: PopulationIndex,
    raw_region_key: str,
    scale: ColorScale,
    normalize: KeyNormalizer = normalize_region_key,
) -> str:
    return scale(resolve_population(index, raw_region_key, normalize))


def describe_region(
    index: PopulationIndex,
    raw_region_key: str,
    normalize: KeyNormalizer = normalize_region_key,
) -> RegionDescription:
    key = normalize(raw_region_key)
    return RegionDescription(
        name=str(raw_region_key).strip(),
        key=key,
        population=index.get(key, 0.0),
        matched=key in index,
    )
