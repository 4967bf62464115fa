"""Mercator projection from lon/lat to screen pixels."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterable

from .config import ProjectionConfig
from .models import ProjectionParams

# WGS84 semi-major axis used by EPSG:3857.
EARTH_RADIUS_M = 6_378_137.0


class MercatorProjection:
    """Web Mercator with a pixel scale (per radian) and screen translation.

    `center` lands on `translate`; screen y grows downward.
    """

    def __init__(self, params: ProjectionParams) -> None:
        self.params = params
        self._transformer = _require_pyproj_transformer()
        cx, cy = self._transformer.transform(float(params.center[0]), float(params.center[1]))
        self._center_m = (float(cx), float(cy))

    def _to_screen(self, mx: float, my: float) -> tuple[float, float]:
        tx, ty = self.params.translate
        k = self.params.scale / EARTH_RADIUS_M
        return (tx + (float(mx) - self._center_m[0]) * k, ty - (float(my) - self._center_m[1]) * k)

    def project_point(self, lon: float, lat: float) -> tuple[float, float]:
        mx, my = self._transformer.transform(float(lon), float(lat))
        return self._to_screen(mx, my)

    def transform(self, xs: Any, ys: Any, zs: Any = None) -> tuple[Any, Any]:
        """Coordinate callback in the shape `shapely.ops.transform` expects."""
        _ = zs
        mxs, mys = self._transformer.transform(xs, ys)
        if isinstance(mxs, (int, float)):
            return self._to_screen(mxs, mys)
        pairs = [self._to_screen(mx, my) for mx, my in zip(mxs, mys)]
        return (tuple(p[0] for p in pairs), tuple(p[1] for p in pairs))

    def project_geometry(self, geometry: Any) -> Any:
        if not is_valid_geometry(geometry):
            return geometry
        shapely_transform = _require_shapely_transform()
        return shapely_transform(self.transform, geometry)


def initial_params(cfg: ProjectionConfig, width: float, height: float) -> ProjectionParams:
    return ProjectionParams(
        center=cfg.center,
        scale=cfg.scale,
        translate=(float(width) / 2.0, float(height) / 2.0),
    )


def is_valid_geometry(geometry: Any) -> bool:
    if geometry is None:
        return False
    if hasattr(geometry, "is_empty") and bool(geometry.is_empty):
        return False
    return True


def projected_bounds(geometries: Iterable[Any]) -> tuple[float, float, float, float] | None:
    """Union bounding box (min_x, min_y, max_x, max_y) of projected shapes."""
    bounds: list[tuple[float, float, float, float]] = []
    for geometry in geometries:
        if not is_valid_geometry(geometry):
            continue
        min_x, min_y, max_x, max_y = [float(item) for item in geometry.bounds]
        bounds.append((min_x, min_y, max_x, max_y))
    if not bounds:
        return None
    return (
        min(b[0] for b in bounds),
        min(b[1] for b in bounds),
        max(b[2] for b in bounds),
        max(b[3] for b in bounds),
    )


def _require_shapely_transform() -> Any:
    try:
        from shapely.ops import transform
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry projection") from exc
    return transform


@lru_cache(maxsize=1)
def _require_pyproj_transformer() -> Any:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for Web Mercator projection") from exc
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)
