"""
Quad Mosaic
===========

Rebuild a photo out of a fixed library of reference tiles. The target is
split into quadrants until a region is narrower or shorter than the leaf
threshold; each leaf is replaced by the tile whose mean colour is nearest
to the leaf's own, resized to fit.
"""

__version__ = "1.0.0"

from quad_mosaic.color_utils import color_signature
from quad_mosaic.composer import compose_region, is_leaf, plan_leaves, resize_tile
from quad_mosaic.config import MosaicConfig
from quad_mosaic.engine import MosaicEngine, compose
from quad_mosaic.errors import (
    EmptyPaletteError,
    EmptyRegionError,
    InvalidPixelBufferError,
    MosaicError,
)
from quad_mosaic.image_io import (
    load_image,
    load_palette,
    load_tile_images,
    mosaic_output_path,
    save_mosaic,
)
from quad_mosaic.palette import Palette, Tile, solid_tile
from quad_mosaic.region import Region

__all__ = [
    "EmptyPaletteError",
    "EmptyRegionError",
    "InvalidPixelBufferError",
    "MosaicConfig",
    "MosaicEngine",
    "MosaicError",
    "Palette",
    "Region",
    "Tile",
    "color_signature",
    "compose",
    "compose_region",
    "is_leaf",
    "load_image",
    "load_palette",
    "load_tile_images",
    "mosaic_output_path",
    "plan_leaves",
    "resize_tile",
    "save_mosaic",
    "solid_tile",
]
