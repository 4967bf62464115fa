"""Viewport adapter: keeps projection parameters in step with the display size."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .models import ProjectionParams

_LOGGER = logging.getLogger("subzonemap.viewport")

FIT_WINDOW = "window"
FIT_CONTENT = "content"

RedrawCallback = Callable[[ProjectionParams], None]
ContentHeight = Callable[[float], float]


@dataclass(frozen=True, slots=True)
class ViewportState:
    width: float
    height: float
    params: ProjectionParams


class ViewportAdapter:
    """Recompute the projection translation on every resize and request a redraw.

    In `window` fit the surface height is the window height. In `content` fit
    it is the height of the rendered content's bounding box at the new width,
    as reported by the renderer.
    """

    def __init__(
        self,
        base_params: ProjectionParams,
        redraw: RedrawCallback | None = None,
        *,
        fit: str = FIT_WINDOW,
        content_height: ContentHeight | None = None,
    ) -> None:
        fit = fit.strip().casefold()
        if fit not in {FIT_WINDOW, FIT_CONTENT}:
            raise ValueError(f"Unknown viewport fit '{fit}'")
        if fit == FIT_CONTENT and content_height is None:
            raise ValueError("Content fit needs a content_height callback")
        self.base_params = base_params
        self.fit = fit
        self._redraw = redraw
        self._content_height = content_height
        self._state: ViewportState | None = None

    @property
    def state(self) -> ViewportState | None:
        return self._state

    def surface_height(self, width: float, height: float) -> float:
        if self.fit == FIT_CONTENT and self._content_height is not None:
            content = float(self._content_height(width))
            if content > 0:
                return content
            _LOGGER.debug("Content height unavailable; using window height %.1f", height)
        return height

    def on_resize(self, width: float, height: float) -> ProjectionParams:
        width = float(width)
        height = float(height)
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport size must be positive, got {width}x{height}")

        surface_height = self.surface_height(width, height)
        params = self.base_params.with_translate(width / 2.0, surface_height / 2.0)
        self._state = ViewportState(width=width, height=surface_height, params=params)
        _LOGGER.debug(
            "Viewport resized to %.0fx%.0f (surface height %.0f); translate=(%.1f, %.1f)",
            width,
            height,
            surface_height,
            params.translate[0],
            params.translate[1],
        )
        if self._redraw is not None:
            self._redraw(params)
        return params
