"""
Immutable ARGB raster used by every stage of the composition pipeline.
"""

import numpy as np

from core.errors import InvalidParameter

# Channel positions in the last axis of Raster.pixels
ALPHA, RED, GREEN, BLUE = 0, 1, 2, 3


class Raster:
    """A 2D grid of 8-bit (alpha, red, green, blue) pixels.

    Pixels are held in a read-only uint8 array of shape (height, width, 4).
    Transforms never modify a raster in place; they build a new one.
    """

    __slots__ = ('_pixels',)

    def __init__(self, pixels):
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidParameter(f"Raster pixels must have shape (H, W, 4), got {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidParameter("Raster dimensions must be non-zero")
        if pixels.dtype != np.uint8:
            if pixels.min() < 0 or pixels.max() > 255:
                raise InvalidParameter(
                    f"Raster values must lie in 0-255, got {pixels.min()}..{pixels.max()}")
            if np.issubdtype(pixels.dtype, np.floating) and not np.array_equal(pixels, np.round(pixels)):
                raise InvalidParameter("Raster values must be whole numbers")

        data = np.array(pixels, dtype=np.uint8, copy=True)
        data.flags.writeable = False
        self._pixels = data

    @classmethod
    def from_array(cls, array):
        """Convert a decoded image array into an ARGB raster.

        Grayscale (H, W), RGB (H, W, 3) and RGBA (H, W, 4) inputs are accepted.
        Data that is not uint8 is rescaled from its own range to 0-255.
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            array = to_uint8(array)

        height, width = array.shape[:2]
        out = np.empty((height, width, 4), dtype=np.uint8)

        if array.ndim == 2:
            out[..., ALPHA] = 255
            out[..., RED] = array
            out[..., GREEN] = array
            out[..., BLUE] = array
        elif array.ndim == 3 and array.shape[2] == 3:
            out[..., ALPHA] = 255
            out[..., RED:] = array
        elif array.ndim == 3 and array.shape[2] == 4:
            out[..., ALPHA] = array[..., 3]
            out[..., RED:] = array[..., :3]
        else:
            raise InvalidParameter(f"Cannot build a raster from array of shape {array.shape}")

        return cls(out)

    @classmethod
    def filled(cls, width, height, argb=(255, 0, 0, 0)):
        """Create a raster where every pixel has the same ARGB value."""
        if width <= 0 or height <= 0:
            raise InvalidParameter("Raster dimensions must be non-zero")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = argb
        return cls(pixels)

    @property
    def pixels(self):
        return self._pixels

    @property
    def width(self):
        return self._pixels.shape[1]

    @property
    def height(self):
        return self._pixels.shape[0]

    @property
    def shape(self):
        """(height, width), the same order numpy uses."""
        return self._pixels.shape[:2]

    @property
    def alpha(self):
        return self._pixels[..., ALPHA]

    @property
    def red(self):
        return self._pixels[..., RED]

    @property
    def green(self):
        return self._pixels[..., GREEN]

    @property
    def blue(self):
        return self._pixels[..., BLUE]

    def pixel(self, x, y):
        """Return the (a, r, g, b) tuple at column x, row y."""
        return tuple(int(v) for v in self._pixels[y, x])

    def to_rgba(self):
        """Return a writable (H, W, 4) RGBA copy for renderers and encoders."""
        return np.concatenate([self._pixels[..., RED:], self._pixels[..., ALPHA:RED]], axis=-1)

    def __eq__(self, other):
        if not isinstance(other, Raster):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self._pixels, other._pixels)

    def __hash__(self):
        return hash((self.shape, self._pixels.tobytes()))

    def __repr__(self):
        return f"Raster(width={self.width}, height={self.height})"


def to_uint8(array):
    """Linearly rescale an array of any numeric type to uint8 over its own range."""
    array = np.asarray(array, dtype=np.float64)
    min_val = array.min()
    max_val = array.max()

    # Constant images carry no contrast
    if max_val == min_val:
        return np.zeros(array.shape, dtype=np.uint8)

    normalized = (array - min_val) / (max_val - min_val) * 255
    return np.floor(normalized + 0.5).astype(np.uint8)
