"""Exceptions raised by the composition engine."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every error the engine raises."""


class EmptyRegionError(MosaicError):
    """A region with zero pixels was passed to signature computation."""


class EmptyPaletteError(MosaicError):
    """The palette holds no tiles, so nothing can be matched."""


class InvalidPixelBufferError(MosaicError, ValueError):
    """Array is not an (H, W, 3) or (H, W, 4) 8-bit image."""
