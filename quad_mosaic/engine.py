"""Top-level entry point: one target image + one palette → one mosaic."""

from __future__ import annotations

import logging
import time

import numpy as np

from quad_mosaic.composer import compose_parallel, compose_region, plan_leaves
from quad_mosaic.config import MosaicConfig
from quad_mosaic.errors import EmptyRegionError
from quad_mosaic.palette import Palette, as_pixel_buffer
from quad_mosaic.region import Region

logger = logging.getLogger(__name__)


class MosaicEngine:
    """Compose photomosaics with a fixed set of settings."""

    def __init__(self, config: MosaicConfig | None = None) -> None:
        self.config = config or MosaicConfig()
        self.config.validate()

    def compose(self, image: np.ndarray, palette: Palette) -> np.ndarray:
        """Rebuild *image* out of tiles from *palette*.

        Args:
            image:   (H, W, 3) or (H, W, 4) uint8 target. Never modified.
            palette: Tiles to build the mosaic from.

        Returns:
            (H, W, C) uint8 mosaic, same shape as *image*.

        Raises:
            EmptyPaletteError: *palette* has no tiles.
            EmptyRegionError: *image* has zero width or height.
            InvalidPixelBufferError: *image* is not an 8-bit RGB(A) array.
        """
        palette.require_tiles()
        target = as_pixel_buffer(image)
        h, w = target.shape[:2]
        if h == 0 or w == 0:
            msg = f"Cannot compose an empty image ({w}x{h})"
            raise EmptyRegionError(msg)

        cfg = self.config
        logger.info(
            "Composing %dx%d mosaic from %d tiles (threshold=%d, %s, workers=%d)",
            w, h, len(palette), cfg.leaf_threshold, palette.color_space, cfg.workers,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Leaves: %d", len(plan_leaves(w, h, cfg.leaf_threshold)))
        t0 = time.perf_counter()

        out = np.zeros_like(target)
        region = Region.full(w, h)
        if cfg.workers > 1:
            compose_parallel(
                target, palette, region, out,
                threshold=cfg.leaf_threshold, workers=cfg.workers,
            )
        else:
            compose_region(target, palette, region, out, threshold=cfg.leaf_threshold)

        logger.info("Mosaic ready  (%.2f s)", time.perf_counter() - t0)
        return out


def compose(
    image: np.ndarray,
    palette: Palette,
    config: MosaicConfig | None = None,
) -> np.ndarray:
    """Compose a mosaic in one call; see :meth:`MosaicEngine.compose`."""
    return MosaicEngine(config).compose(image, palette)
