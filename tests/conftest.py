"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from core.raster import Raster


def grey(value, width=1, height=1, alpha=255):
    """Raster where every pixel is (alpha, value, value, value)."""
    return Raster.filled(width, height, (alpha, value, value, value))


def argb(pixels):
    """Raster from a nested list of (a, r, g, b) rows."""
    return Raster(np.array(pixels, dtype=np.uint8))


@pytest.fixture
def random_rasters():
    """Five 4x3 rasters with random ARGB content."""
    rng = np.random.default_rng(1234)
    return [Raster(rng.integers(0, 256, size=(3, 4, 4), dtype=np.uint8)) for _ in range(5)]

