"""
Display state of one viewport: the loaded stack, the selected slice, tone
settings and the zoom/pan transform.
"""

import logging

from core.errors import InvalidParameter
from core.image_processor import ImageProcessor
from core.view_transform import ViewTransform


class Viewport:
    """Holds what one viewport shows and how it is toned and framed.

    The adjusted raster is recomputed on request; callers keep whatever
    raster they last received if they need it later (e.g. for export).
    """

    def __init__(self, transform=None, brightness_factor=1.0, contrast_offset=0.0, logger=None):
        self.logger = logger or logging.getLogger('stack_composer')
        self.transform = transform or ViewTransform(logger=self.logger)
        self.processor = ImageProcessor(self.logger)
        self._stack = []
        self._slice_index = 0
        self.brightness_factor = 1.0
        self.contrast_offset = 0.0
        self.set_brightness(brightness_factor)
        self.set_contrast(contrast_offset)

    @classmethod
    def from_config(cls, config, logger=None):
        tone = config.get('tone', {})
        return cls(
            transform=ViewTransform.from_config(config, logger),
            brightness_factor=tone.get('brightness_factor', 1.0),
            contrast_offset=tone.get('contrast_offset', 0.0),
            logger=logger,
        )

    @property
    def slice_count(self):
        return len(self._stack)

    @property
    def slice_index(self):
        return self._slice_index

    @property
    def current_raster(self):
        """The untoned raster of the selected slice, or None when empty."""
        if not self._stack:
            return None
        return self._stack[self._slice_index]

    def set_image(self, raster):
        self.set_stack([raster])

    def set_stack(self, rasters):
        """Load a new stack, select its first slice and reset zoom and pan."""
        self._stack = list(rasters)
        self._slice_index = 0
        self.transform.reset()
        self.logger.debug(f"Viewport loaded stack of {len(self._stack)} slices")

    def clear(self):
        self.set_stack([])

    def set_slice(self, index):
        """Select a slice and recentre the pan; the zoom level is kept.

        Indices outside the stack are ignored.
        """
        if 0 <= index < len(self._stack):
            self._slice_index = index
            self.transform.reset_pan()
            return True
        self.logger.debug(f"Ignoring slice index {index} for stack of {len(self._stack)}")
        return False

    def set_brightness(self, factor):
        if factor < 0:
            raise InvalidParameter(f"Brightness factor must be >= 0, got {factor}")
        self.brightness_factor = factor

    def set_contrast(self, offset):
        self.contrast_offset = offset

    def adjusted_raster(self):
        """The selected slice with the current brightness and contrast applied."""
        raster = self.current_raster
        if raster is None:
            return None
        return self.processor.adjust(raster, self.brightness_factor, self.contrast_offset)

    def fit(self, viewport_width, viewport_height):
        raster = self.current_raster
        if raster is None:
            return
        self.transform.fit_to(viewport_width, viewport_height, raster.width, raster.height)

    def render(self, viewport_width, viewport_height):
        """Toned, zoomed and panned view of the selected slice, or None when empty."""
        adjusted = self.adjusted_raster()
        if adjusted is None:
            return None
        return self.transform.render(adjusted, viewport_width, viewport_height)
