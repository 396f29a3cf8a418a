"""Recursive quadrant subdivision and tile compositing.

The target is split into four quadrants until a region is narrower OR
shorter than the leaf threshold. Each leaf is replaced by the palette tile
whose mean colour is closest to the leaf's own mean colour, resized to the
leaf's exact size with nearest-neighbour resampling.

Every call writes only into its own sub-rectangle of the output array, so
the four quadrants of any region can be filled independently.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from PIL import Image

from quad_mosaic.color_utils import color_signature
from quad_mosaic.palette import Palette, Tile
from quad_mosaic.region import Region

logger = logging.getLogger(__name__)

LEAF_THRESHOLD = 10

_MODES = {3: "RGB", 4: "RGBA"}


def is_leaf(region: Region, threshold: int = LEAF_THRESHOLD) -> bool:
    """A region is a leaf once either side drops below *threshold*."""
    return region.width < threshold or region.height < threshold


def plan_leaves(
    width: int,
    height: int,
    threshold: int = LEAF_THRESHOLD,
) -> list[Region]:
    """All leaf regions of a ``width x height`` image, in composition order."""
    leaves: list[Region] = []
    stack = [Region.full(width, height)]
    while stack:
        region = stack.pop()
        if is_leaf(region, threshold):
            leaves.append(region)
        else:
            # reversed so the upper-left quadrant is popped first
            stack.extend(reversed(region.quadrants()))
    return leaves


def resize_tile(tile: Tile, width: int, height: int, channels: int = 3) -> np.ndarray:
    """Nearest-neighbour resize of *tile* to ``(height, width, channels)``.

    No interpolation happens, so the result only contains colours already
    present in the tile (plus opaque alpha when an RGB tile is widened to RGBA).
    """
    img = Image.fromarray(np.ascontiguousarray(tile.pixels))
    mode = _MODES[channels]
    if img.mode != mode:
        img = img.convert(mode)
    if img.size != (width, height):
        img = img.resize((width, height), Image.NEAREST)
    return np.asarray(img, dtype=np.uint8)


def fill_leaf(
    image: np.ndarray,
    palette: Palette,
    region: Region,
    out: np.ndarray,
) -> Tile:
    """Paste the best-matching tile over *region* of *out*."""
    signature = color_signature(image, region)
    tile = palette.nearest(signature)
    out[region.slices] = resize_tile(tile, region.width, region.height, out.shape[2])
    return tile


def compose_region(
    image: np.ndarray,
    palette: Palette,
    region: Region,
    out: np.ndarray,
    threshold: int = LEAF_THRESHOLD,
) -> None:
    """Fill *region* of *out* with tiles matched against *image*.

    Args:
        image:     (H, W, C) uint8 target.
        palette:   Non-empty palette of reference tiles.
        region:    Rectangle to fill; coordinates refer to both arrays.
        out:       (H, W, C) uint8 output, written only inside *region*.
        threshold: Leaf threshold, see :func:`is_leaf`.
    """
    if is_leaf(region, threshold):
        fill_leaf(image, palette, region, out)
        return
    for quadrant in region.quadrants():
        compose_region(image, palette, quadrant, out, threshold)


def compose_parallel(
    image: np.ndarray,
    palette: Palette,
    region: Region,
    out: np.ndarray,
    threshold: int = LEAF_THRESHOLD,
    workers: int = 4,
) -> None:
    """Like :func:`compose_region`, with the top-level quadrants on threads.

    Each worker owns one quadrant, a disjoint slice of *out*, so no locking
    is needed. All workers are joined before returning; if any failed, the
    first failure in quadrant order is re-raised.
    """
    if workers <= 1 or is_leaf(region, threshold):
        compose_region(image, palette, region, out, threshold)
        return

    quadrants = region.quadrants()
    with ThreadPoolExecutor(max_workers=min(workers, len(quadrants))) as pool:
        futures = [
            pool.submit(compose_region, image, palette, q, out, threshold)
            for q in quadrants
        ]
    # the executor context has already waited for every future
    errors = [e for f in futures if (e := f.exception()) is not None]
    if errors:
        if len(errors) > 1:
            logger.debug("%d quadrant workers failed; raising the first", len(errors))
        raise errors[0]
