"""Choropleth drawing on top of matplotlib: fills, legend, hover, resize."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Sequence

from .config import RenderConfig
from .context import MapContext
from .models import ProjectionParams, RegionDescription, RegionFeature
from .projection import MercatorProjection, is_valid_geometry, projected_bounds
from .viewport import FIT_WINDOW, ViewportAdapter

_LOGGER = logging.getLogger("subzonemap.render")

_CONTENT_MARGIN_PX = 20.0
_LEGEND_EDGE_COLOR = "#999999"


class ChoroplethRenderer:
    """Draws every subzone filled by population and keeps it in sync with the viewport."""

    def __init__(
        self,
        cfg: RenderConfig,
        context: MapContext,
        features: Sequence[RegionFeature],
        *,
        fit: str = FIT_WINDOW,
    ) -> None:
        self.cfg = cfg
        self.context = context
        self.features = tuple(features)
        self.fills = tuple(context.color_for(feature.name) for feature in self.features)
        self._projected: tuple[Any, ...] = self._project_all(context.params)
        self._content_height_px = self._measure_content_height()
        self.viewport = ViewportAdapter(
            context.params,
            self.redraw,
            fit=fit,
            content_height=self._content_height,
        )
        self._fig: Any | None = None
        self._ax: Any | None = None
        self._patches: list[Any] = []
        self._tooltip: Any | None = None
        self._hovered: int | None = None

    def _project_all(self, params: ProjectionParams) -> tuple[Any, ...]:
        projection = MercatorProjection(params)
        return tuple(projection.project_geometry(feature.geometry) for feature in self.features)

    def _measure_content_height(self) -> float:
        bounds = projected_bounds(self._projected)
        if bounds is None:
            return 0.0
        return (bounds[3] - bounds[1]) + 2.0 * _CONTENT_MARGIN_PX

    def _content_height(self, width: float) -> float:
        _ = width
        return self._content_height_px

    def redraw(self, params: ProjectionParams) -> None:
        """Re-project every boundary with `params` and refresh the open figure."""
        self.context.update_params(params)
        self._projected = self._project_all(params)
        if self._ax is None or self._fig is None:
            return
        path_cls, _, _ = _require_matplotlib_artists()
        for patch, geometry in zip(self._patches, self._projected):
            patch.set_path(_geometry_path(geometry, path_cls))
        self._apply_limits()
        self._fig.canvas.draw_idle()

    def region_at(self, x: float, y: float) -> int | None:
        """Index of the feature under screen point (x, y), if any."""
        point_factory = _require_shapely_point_factory()
        point = point_factory(float(x), float(y))
        for idx, geometry in enumerate(self._projected):
            if is_valid_geometry(geometry) and geometry.contains(point):
                return idx
        return None

    def describe_at(self, x: float, y: float) -> RegionDescription | None:
        idx = self.region_at(x, y)
        if idx is None:
            return None
        return self.context.describe(self.features[idx].name)

    def render_to_file(
        self,
        output_path: Path,
        *,
        width_px: int,
        height_px: int,
        dpi: int,
    ) -> Path:
        plt = _require_pyplot(headless=True)
        self.viewport.on_resize(width_px, height_px)
        fig = self._create_figure(plt, dpi=dpi)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(
                output_path,
                dpi=dpi,
                format=self.cfg.format,
                transparent=self.cfg.background.casefold() == "transparent",
            )
            _LOGGER.info("Map written to %s", output_path)
            return output_path
        finally:
            plt.close(fig)
            self._detach()

    def show(self, *, width_px: int, height_px: int, dpi: int) -> None:
        plt = _require_pyplot(headless=False)
        self.viewport.on_resize(width_px, height_px)
        fig = self._create_figure(plt, dpi=dpi)
        fig.canvas.mpl_connect("motion_notify_event", self._on_motion)
        fig.canvas.mpl_connect("resize_event", self._on_resize)
        try:
            plt.show()
        finally:
            self._detach()

    def _create_figure(self, plt: Any, *, dpi: int) -> Any:
        state = self.viewport.state
        if state is None:
            raise RuntimeError("Viewport must be sized before drawing")
        fig = plt.figure(figsize=(state.width / dpi, state.height / dpi), dpi=dpi)
        ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
        self._fig = fig
        self._ax = ax
        _apply_background(fig=fig, ax=ax, background=self.cfg.background)
        self._apply_limits()
        ax.axis("off")
        self._draw_regions(ax)
        self._draw_legend(ax)
        ax.text(
            0.02,
            0.98,
            self.cfg.title,
            transform=ax.transAxes,
            ha="left",
            va="top",
            fontsize=self.cfg.font_size + 4,
            fontweight="bold",
        )
        self._tooltip = ax.annotate(
            "",
            xy=(0.0, 0.0),
            xytext=(10, 10),
            textcoords="offset points",
            fontsize=self.cfg.font_size,
            bbox={"boxstyle": "round", "fc": "white", "ec": _LEGEND_EDGE_COLOR},
            zorder=10,
        )
        self._tooltip.set_visible(False)
        return fig

    def _apply_limits(self) -> None:
        state = self.viewport.state
        if self._ax is None or state is None:
            return
        self._ax.set_xlim(0.0, state.width)
        # Screen y grows downward.
        self._ax.set_ylim(state.height, 0.0)
        self._ax.set_aspect("equal", adjustable="box")

    def _draw_regions(self, ax: Any) -> None:
        path_cls, path_patch_cls, _ = _require_matplotlib_artists()
        self._patches = []
        for geometry, fill in zip(self._projected, self.fills):
            patch = path_patch_cls(
                _geometry_path(geometry, path_cls),
                facecolor=fill,
                edgecolor=self.cfg.stroke_color,
                linewidth=self.cfg.stroke_width,
                zorder=1,
            )
            ax.add_patch(patch)
            self._patches.append(patch)

    def _draw_legend(self, ax: Any) -> None:
        _, _, legend_patch_cls = _require_matplotlib_artists()
        legend_cfg = self.cfg.legend
        handles = [
            legend_patch_cls(facecolor=color, edgecolor=_LEGEND_EDGE_COLOR, label=label)
            for label, color in self.context.scale.legend_entries(
                stops=legend_cfg.linear_stops, label_format=legend_cfg.label_format
            )
        ]
        ax.legend(
            handles=handles,
            loc=legend_cfg.loc,
            title=legend_cfg.title,
            fontsize=self.cfg.font_size,
            title_fontsize=self.cfg.font_size,
            frameon=False,
        )

    def _on_motion(self, event: Any) -> None:
        if self._ax is None or self._fig is None:
            return
        hit: int | None = None
        if event.inaxes is self._ax and event.xdata is not None and event.ydata is not None:
            hit = self.region_at(event.xdata, event.ydata)
        if hit is None and self._hovered is None:
            return
        if hit != self._hovered:
            self._set_highlight(self._hovered, active=False)
            self._set_highlight(hit, active=True)
            self._hovered = hit
        if self._tooltip is not None:
            if hit is None:
                self._tooltip.set_visible(False)
            else:
                description = self.context.describe(self.features[hit].name)
                self._tooltip.xy = (event.xdata, event.ydata)
                self._tooltip.set_text(description.tooltip)
                self._tooltip.set_visible(True)
        self._fig.canvas.draw_idle()

    def _set_highlight(self, idx: int | None, *, active: bool) -> None:
        if idx is None or idx >= len(self._patches):
            return
        patch = self._patches[idx]
        if active:
            patch.set_edgecolor(self.cfg.hover_stroke_color)
            patch.set_linewidth(self.cfg.hover_stroke_width)
            patch.set_zorder(2)
        else:
            patch.set_edgecolor(self.cfg.stroke_color)
            patch.set_linewidth(self.cfg.stroke_width)
            patch.set_zorder(1)

    def _on_resize(self, event: Any) -> None:
        width = float(getattr(event, "width", 0) or 0)
        height = float(getattr(event, "height", 0) or 0)
        if width <= 0 or height <= 0:
            return
        self.viewport.on_resize(width, height)

    def _detach(self) -> None:
        self._fig = None
        self._ax = None
        self._patches = []
        self._tooltip = None
        self._hovered = None


def _iter_polygons(geometry: Any) -> Iterator[Any]:
    if not is_valid_geometry(geometry):
        return
    geom_type = str(getattr(geometry, "geom_type", ""))
    if geom_type == "Polygon":
        yield geometry
    elif geom_type in {"MultiPolygon", "GeometryCollection"}:
        for part in geometry.geoms:
            yield from _iter_polygons(part)


def _geometry_path(geometry: Any, path_cls: Any) -> Any:
    """Compound matplotlib path with holes wound opposite to shells."""
    orient = _require_shapely_orient()
    paths: list[Any] = []
    for polygon in _iter_polygons(geometry):
        oriented = orient(polygon, sign=1.0)
        paths.append(path_cls(list(oriented.exterior.coords), closed=True))
        for interior in oriented.interiors:
            paths.append(path_cls(list(interior.coords), closed=True))
    return path_cls.make_compound_path(*paths)


def _apply_background(*, fig: Any, ax: Any, background: str) -> None:
    if background.casefold() == "transparent":
        fig.patch.set_facecolor("white")
        fig.patch.set_alpha(0.0)
        ax.set_facecolor((1.0, 1.0, 1.0, 0.0))
    else:
        fig.patch.set_facecolor(background)
        ax.set_facecolor(background)


def _require_pyplot(*, headless: bool) -> Any:
    try:
        import matplotlib

        if headless:
            matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt


@lru_cache(maxsize=1)
def _require_matplotlib_artists() -> tuple[Any, Any, Any]:
    try:
        from matplotlib.patches import Patch, PathPatch
        from matplotlib.path import Path as MplPath
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return (MplPath, PathPatch, Patch)


def _require_shapely_orient() -> Any:
    try:
        from shapely.geometry.polygon import orient
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for polygon drawing") from exc
    return orient


def _require_shapely_point_factory() -> Any:
    try:
        from shapely.geometry import Point
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for hover hit-testing") from exc
    return Point
