"""
Zoom and pan state for one viewport.

A content point (x, y) is drawn at screen position
(pan_x + x * zoom, pan_y + y * zoom).
"""

import logging
from dataclasses import dataclass

import numpy as np
import cv2

from core.errors import InvalidParameter
from core.raster import Raster

DEFAULT_ZOOM_BOUNDS = (0.1, 10.0)
WHEEL_ZOOM_STEP = 0.1


@dataclass(frozen=True)
class ViewState:
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


class ViewTransform:
    """Mutable zoom/pan state with anchor-preserving zoom."""

    def __init__(self, zoom_min=DEFAULT_ZOOM_BOUNDS[0], zoom_max=DEFAULT_ZOOM_BOUNDS[1],
                 wheel_step=WHEEL_ZOOM_STEP, logger=None):
        if zoom_min <= 0 or zoom_max <= 0:
            raise InvalidParameter(f"Zoom bounds must be positive, got ({zoom_min}, {zoom_max})")
        if zoom_min > zoom_max:
            raise InvalidParameter(f"Zoom minimum {zoom_min} exceeds maximum {zoom_max}")

        self.logger = logger or logging.getLogger('stack_composer')
        self.zoom_min = zoom_min
        self.zoom_max = zoom_max
        self.wheel_step = wheel_step
        self.zoom = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0

    @classmethod
    def from_config(cls, config, logger=None):
        view = config.get('view', {})
        zoom_min, zoom_max = view.get('zoom_bounds', DEFAULT_ZOOM_BOUNDS)
        return cls(zoom_min, zoom_max, view.get('wheel_zoom_step', WHEEL_ZOOM_STEP), logger)

    @property
    def state(self):
        return ViewState(self.zoom, self.pan_x, self.pan_y)

    def clamp_zoom(self, zoom):
        return max(self.zoom_min, min(zoom, self.zoom_max))

    def zoom_at(self, screen_x, screen_y, factor):
        """Scale zoom by factor while keeping the content under (screen_x, screen_y) fixed."""
        old = self.zoom
        self.zoom = self.clamp_zoom(old * factor)
        ratio = self.zoom / old
        self.pan_x = screen_x - (screen_x - self.pan_x) * ratio
        self.pan_y = screen_y - (screen_y - self.pan_y) * ratio

    def wheel_zoom(self, screen_x, screen_y, rotation):
        """Zoom for a mouse wheel turn; positive rotation zooms out."""
        self.zoom_at(screen_x, screen_y, 1 - rotation * self.wheel_step)

    def pan(self, dx, dy):
        self.pan_x += dx
        self.pan_y += dy

    def set_zoom(self, zoom):
        """Jump to an absolute zoom level and recentre the pan."""
        self.zoom = self.clamp_zoom(zoom)
        self.reset_pan()

    def reset(self):
        self.zoom = 1.0
        self.reset_pan()

    def reset_pan(self):
        self.pan_x = self.pan_y = 0.0

    def fit_to(self, viewport_width, viewport_height, raster_width, raster_height):
        """Zoom so the whole raster fits inside the viewport.

        All sizes must be positive; the state is left unchanged otherwise.
        """
        sizes = (viewport_width, viewport_height, raster_width, raster_height)
        if min(sizes) <= 0:
            self.logger.error(f"Cannot fit {raster_width}x{raster_height} into "
                              f"{viewport_width}x{viewport_height}")
            raise InvalidParameter(f"Fit sizes must be positive, got {sizes}")

        self.zoom = min(viewport_width / raster_width, viewport_height / raster_height)
        self.reset_pan()
        self.logger.debug(f"Fit {raster_width}x{raster_height} into "
                          f"{viewport_width}x{viewport_height}: zoom={self.zoom:.4f}")

    def content_to_screen(self, x, y):
        return self.pan_x + x * self.zoom, self.pan_y + y * self.zoom

    def screen_to_content(self, screen_x, screen_y):
        return (screen_x - self.pan_x) / self.zoom, (screen_y - self.pan_y) / self.zoom

    def render(self, raster, viewport_width, viewport_height):
        """Draw raster into a viewport-sized raster with bilinear interpolation.

        Screen pixels not covered by the raster are transparent black.
        """
        if viewport_width <= 0 or viewport_height <= 0:
            raise InvalidParameter(
                f"Viewport size must be positive, got {viewport_width}x{viewport_height}")

        matrix = np.array([
            [self.zoom, 0.0, self.pan_x],
            [0.0, self.zoom, self.pan_y],
        ], dtype=np.float64)
        drawn = cv2.warpAffine(
            raster.pixels.copy(), matrix, (viewport_width, viewport_height),
            flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=(0, 0, 0, 0)
        )
        return Raster(drawn)

    def __repr__(self):
        return f"ViewTransform(zoom={self.zoom:.3f}, pan=({self.pan_x:.1f}, {self.pan_y:.1f}))"
