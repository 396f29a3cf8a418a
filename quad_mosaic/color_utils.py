"""Colour signatures and tile-distance computation."""

from __future__ import annotations

import numpy as np
from scipy.spatial.distance import cdist
from skimage.color import rgb2lab

from quad_mosaic.errors import EmptyRegionError
from quad_mosaic.region import Region


def color_signature(
    pixels: np.ndarray,
    region: Region | None = None,
) -> tuple[int, int, int]:
    """Mean RGB of *region* (or the whole array), floor-divided per channel.

    Args:
        pixels: (H, W, 3) or (H, W, 4) uint8. Alpha is ignored.
        region: Sub-rectangle to average; ``None`` = the whole array.

    Returns:
        ``(r, g, b)`` integers in [0, 255].

    Raises:
        EmptyRegionError: the region holds no pixels.
    """
    if region is not None:
        if region.is_empty:
            msg = f"Cannot average an empty region ({region.width}x{region.height})"
            raise EmptyRegionError(msg)
        pixels = pixels[region.slices]

    h, w = pixels.shape[:2]
    count = h * w
    if count == 0:
        msg = f"Cannot average an empty region ({w}x{h})"
        raise EmptyRegionError(msg)

    sums = pixels[..., :3].reshape(-1, 3).sum(axis=0, dtype=np.int64)
    r, g, b = (int(s) // count for s in sums)
    return r, g, b


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) uint8 RGB → (N, 3) float64 CIELAB."""
    return rgb2lab(rgb.astype(np.float64).reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def to_color_space(rgb: np.ndarray, color_space: str = "rgb") -> np.ndarray:
    """(N, 3) RGB signatures → (N, 3) float64 points in *color_space*."""
    points = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)
    if color_space == "lab":
        return rgb_to_lab(points)
    if color_space != "rgb":
        msg = f"Unknown colour space '{color_space}'. Available: lab, rgb"
        raise ValueError(msg)
    return points


def color_distances(query_point: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Euclidean distance from one (3,) point to each row of (N, 3) *points*."""
    return cdist(query_point.reshape(1, 3), points, metric="euclidean")[0]
