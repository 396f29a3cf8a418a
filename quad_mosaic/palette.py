"""Reference tiles and nearest-signature lookup."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import numpy as np

from quad_mosaic.color_utils import color_distances, color_signature, to_color_space
from quad_mosaic.errors import EmptyPaletteError, InvalidPixelBufferError

logger = logging.getLogger(__name__)


def as_pixel_buffer(pixels: np.ndarray, what: str = "image") -> np.ndarray:
    """Check that *pixels* is an (H, W, 3|4) 8-bit image and return it as uint8."""
    arr = np.asarray(pixels)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        msg = f"{what} must be (H, W, 3) or (H, W, 4), got shape {arr.shape}"
        raise InvalidPixelBufferError(msg)
    if arr.dtype != np.uint8:
        if not np.issubdtype(arr.dtype, np.integer) or arr.size and (
            arr.min() < 0 or arr.max() > 255
        ):
            msg = f"{what} must hold 8-bit channel values, got dtype {arr.dtype}"
            raise InvalidPixelBufferError(msg)
        arr = arr.astype(np.uint8)
    return arr


@dataclass(frozen=True, eq=False)
class Tile:
    """A reference image plus its precomputed mean-RGB signature."""

    name: str
    pixels: np.ndarray
    signature: tuple[int, int, int]

    @classmethod
    def from_pixels(cls, name: str, pixels: np.ndarray) -> Tile:
        arr = as_pixel_buffer(pixels, what=f"tile {name!r}").copy()
        arr.flags.writeable = False
        return cls(name=name, pixels=arr, signature=color_signature(arr))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


def solid_tile(
    name: str,
    color: tuple[int, int, int],
    size: tuple[int, int] = (16, 16),
) -> Tile:
    """Uniform *color* tile of ``(width, height)`` *size*."""
    w, h = size
    pixels = np.empty((h, w, 3), dtype=np.uint8)
    pixels[:] = color
    return Tile.from_pixels(name, pixels)


class Palette:
    """Ordered, read-only collection of tiles.

    Signatures are computed once when each tile is created and cached here
    as an (N, 3) matrix, already converted to the matching colour space.
    Lookups never mutate anything, so one palette can be shared between
    threads.
    """

    def __init__(self, tiles: Iterable[Tile], color_space: str = "rgb") -> None:
        self._tiles: tuple[Tile, ...] = tuple(tiles)
        self.color_space = color_space
        self._signatures = np.array(
            [t.signature for t in self._tiles], dtype=np.uint8,
        ).reshape(-1, 3)
        if self._tiles:
            self._points = to_color_space(self._signatures, color_space)
        else:
            self._points = np.empty((0, 3), dtype=np.float64)
        self._signatures.flags.writeable = False
        self._points.flags.writeable = False

    @classmethod
    def from_images(
        cls,
        named_images: Iterable[tuple[str, np.ndarray]],
        color_space: str = "rgb",
    ) -> Palette:
        """Build a palette from ``(name, pixels)`` pairs, keeping their order."""
        tiles = [Tile.from_pixels(name, pixels) for name, pixels in named_images]
        logger.debug("Palette: %d tiles (%s)", len(tiles), color_space)
        return cls(tiles, color_space=color_space)

    def __len__(self) -> int:
        return len(self._tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self._tiles)

    def __getitem__(self, index: int) -> Tile:
        return self._tiles[index]

    @property
    def signatures(self) -> np.ndarray:
        """(N, 3) uint8 RGB signatures in enumeration order."""
        return self._signatures

    def require_tiles(self) -> None:
        if not self._tiles:
            msg = "Palette is empty: at least one reference tile is required"
            raise EmptyPaletteError(msg)

    def nearest_index(self, signature: tuple[int, int, int]) -> int:
        """Index of the tile closest to *signature*.

        Equal distances keep the earliest tile in enumeration order
        (``np.argmin`` returns the first minimum).
        """
        self.require_tiles()
        query = to_color_space(np.asarray(signature), self.color_space)[0]
        distances = color_distances(query, self._points)
        return int(np.argmin(distances))

    def nearest(self, signature: tuple[int, int, int]) -> Tile:
        """Tile whose signature is closest to *signature*."""
        return self._tiles[self.nearest_index(signature)]
