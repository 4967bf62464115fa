"""Explicit map context shared by the classifier, viewport, and renderer."""

from __future__ import annotations

from dataclasses import dataclass

from .classify import color_for, describe_region
from .config import AppConfig
from .keys import KeyNormalizer, resolve_normalizer
from .loader import MapSources
from .models import PopulationIndex, ProjectionParams, RegionDescription
from .population import build_population_index
from .projection import initial_params
from .scales import ColorScale, build_color_scale


@dataclass(slots=True)
class MapContext:
    """Built once per data load; only `params` changes afterwards."""

    index: PopulationIndex
    scale: ColorScale
    normalize: KeyNormalizer
    params: ProjectionParams

    def color_for(self, raw_region_key: str) -> str:
        return color_for(self.index, raw_region_key, self.scale, self.normalize)

    def describe(self, raw_region_key: str) -> RegionDescription:
        return describe_region(self.index, raw_region_key, self.normalize)

    def update_params(self, params: ProjectionParams) -> None:
        self.params = params


def build_context(
    cfg: AppConfig,
    sources: MapSources,
    *,
    width: float | None = None,
    height: float | None = None,
) -> MapContext:
    normalize = resolve_normalizer(cfg.data.key_normalization)
    index = build_population_index(sources.population.records, normalize)
    return MapContext(
        index=index,
        scale=build_color_scale(cfg.scale, index),
        normalize=normalize,
        params=initial_params(
            cfg.projection,
            width if width is not None else cfg.viewport.width_px,
            height if height is not None else cfg.viewport.height_px,
        ),
    )
