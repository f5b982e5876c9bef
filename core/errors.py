"""
Failure types raised by the composition core.
"""


class StackComposerError(Exception):
    """Base class for all errors raised by the core."""


class EmptyInput(StackComposerError):
    """An operation that needs at least one source raster received none."""


class ShapeMismatch(StackComposerError):
    """Source rasters do not share the same width and height."""

    def __init__(self, expected, found):
        self.expected = expected
        self.found = found
        super().__init__(f"Expected raster of shape {expected}, got {found}")


class InvalidParameter(StackComposerError, ValueError):
    """A numeric parameter is outside its allowed range."""


class UnsupportedFormat(StackComposerError):
    """A plane source was asked to read a file type it does not handle."""
