"""
Pixel operations on rasters: tone adjustment, maximum-intensity projection
and channel blending.

Every function here is pure. Each one reads the same pixel coordinate across
its inputs and writes only that coordinate of a new output raster.
"""

import logging

import numpy as np
import cv2

from core.errors import EmptyInput, InvalidParameter, ShapeMismatch
from core.raster import ALPHA, BLUE, RED, Raster

logger = logging.getLogger('stack_composer')

# Number of output colour channels a blend can fill (R, G, B)
MAX_BLEND_CHANNELS = 3


def adjust(raster, brightness_factor=1.0, contrast_offset=0.0):
    """Apply a linear brightness/contrast rescale to the colour channels.

    Each of R, G and B becomes clamp(0, 255, round(factor * v + offset)).
    Alpha is passed through untouched.
    """
    if brightness_factor < 0:
        logger.error(f"Rejected negative brightness factor {brightness_factor}")
        raise InvalidParameter(f"Brightness factor must be >= 0, got {brightness_factor}")

    if brightness_factor == 1.0 and contrast_offset == 0:
        return Raster(raster.pixels)

    colour = raster.pixels[..., RED:].astype(np.float64)
    scaled = np.floor(colour * brightness_factor + contrast_offset + 0.5)

    out = np.empty_like(raster.pixels)
    out[..., ALPHA] = raster.pixels[..., ALPHA]
    out[..., RED:] = np.clip(scaled, 0, 255).astype(np.uint8)
    return Raster(out)


def project(rasters):
    """Maximum-intensity projection of a stack of same-shape rasters.

    Alpha, red, green and blue are each maximized independently per pixel.
    """
    rasters = list(rasters)
    _check_sources(rasters, 'project')

    logger.debug(f"Projecting {len(rasters)} slices of shape {rasters[0].shape}")
    if len(rasters) == 1:
        return Raster(rasters[0].pixels)

    stack = np.stack([r.pixels for r in rasters])
    return Raster(np.max(stack, axis=0))


def blend(channels):
    """Blend up to three single-intensity rasters into one RGB composite.

    Source 0 fills red, source 1 green and source 2 blue. A source's intensity
    is the maximum of its own R, G and B values. Sources past the third are
    ignored. Output alpha is the maximum alpha of the contributing sources.
    """
    channels = list(channels)
    _check_sources(channels, 'blend')

    used = channels[:MAX_BLEND_CHANNELS]
    if len(channels) > MAX_BLEND_CHANNELS:
        logger.debug(f"Blend received {len(channels)} channels, using first {MAX_BLEND_CHANNELS}")

    out = np.zeros(used[0].pixels.shape, dtype=np.uint8)
    for index, source in enumerate(used):
        out[..., RED + index] = intensity(source)
        np.maximum(out[..., ALPHA], source.alpha, out=out[..., ALPHA])

    return Raster(out)


def intensity(raster):
    """Per-pixel grey level of a raster, taken as max(R, G, B)."""
    return raster.pixels[..., RED:BLUE + 1].max(axis=-1)


def thumbnail(raster, width, height):
    """Resize a raster to width x height for previews."""
    if width <= 0 or height <= 0:
        raise InvalidParameter(f"Thumbnail size must be positive, got {width}x{height}")

    shrinking = width < raster.width or height < raster.height
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    resized = cv2.resize(raster.pixels.copy(), (width, height), interpolation=interpolation)
    return Raster(resized)


def preview_blend(channels, brightness_factor=1.0, size=(300, 300)):
    """Composite, brighten and shrink a channel selection for a live preview."""
    composite = blend(channels)
    brightened = adjust(composite, brightness_factor, 0)
    return thumbnail(brightened, *size)


def _check_sources(rasters, operation):
    """Reject an empty source list or sources of differing shapes."""
    if not rasters:
        logger.error(f"{operation} called without source rasters")
        raise EmptyInput(f"{operation} requires at least one raster")

    expected = rasters[0].shape
    for raster in rasters[1:]:
        if raster.shape != expected:
            logger.error(f"{operation} received mismatched shapes {expected} and {raster.shape}")
            raise ShapeMismatch(expected, raster.shape)


class ImageProcessor:
    """Pixel operations bound to a caller's logger.

    Viewports and the hierarchy builder hold one of these so that their
    pixel work is logged under the same logger as the rest of their output.
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger('stack_composer')

    def adjust(self, raster, brightness_factor=1.0, contrast_offset=0.0):
        self.logger.debug(f"Adjusting {raster!r}: factor={brightness_factor}, offset={contrast_offset}")
        return adjust(raster, brightness_factor, contrast_offset)

    def project(self, rasters):
        rasters = list(rasters)
        self.logger.debug(f"Projecting {len(rasters)} rasters")
        return project(rasters)

    def blend(self, channels):
        channels = list(channels)
        self.logger.debug(f"Blending {len(channels)} channels")
        return blend(channels)

    def preview(self, channels, brightness_factor=1.0, size=(300, 300)):
        return preview_blend(channels, brightness_factor, size)
