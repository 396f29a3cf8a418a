"""Image loading, tile-library loading, atomic saving and comparison grids."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from quad_mosaic.config import MosaicConfig
from quad_mosaic.palette import Palette

logger = logging.getLogger(__name__)

TILE_EXTENSIONS = MosaicConfig.SUPPORTED_EXTENSIONS


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def _to_pixels(img: Image.Image) -> np.ndarray:
    """RGBA array if *img* carries transparency, RGB otherwise."""
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    return np.array(img.convert("RGBA" if has_alpha else "RGB"), dtype=np.uint8)


def load_image(path: str | Path) -> np.ndarray:
    """Decode an image file.

    Images with transparency are kept as RGBA, everything else becomes RGB.

    Returns:
        (H, W, 3) or (H, W, 4) uint8 array.
    """
    with Image.open(path) as img:
        return _to_pixels(img)


def load_tile_images(
    directory: str | Path,
    prefix: str = "dali",
    extensions: frozenset[str] = TILE_EXTENSIONS,
) -> list[tuple[str, np.ndarray]]:
    """Decode every ``<prefix><n>.<ext>`` file in *directory*.

    Files are ordered by their numeric suffix (``dali2`` before ``dali10``);
    names that do not follow the scheme are skipped. Tiles with transparency
    keep their alpha channel.

    Returns:
        ``[(name, (H, W, 3|4) uint8 array), ...]``
    """
    folder = Path(directory)
    if not folder.is_dir():
        logger.warning("Tile folder %s does not exist", folder)
        return []

    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    numbered: list[tuple[int, Path]] = []
    for f in folder.iterdir():
        if not f.is_file() or f.suffix.lower() not in extensions:
            continue
        match = pattern.match(f.stem)
        if match:
            numbered.append((int(match.group(1)), f))

    tiles = []
    for _, f in sorted(numbered):
        with Image.open(f) as img:
            tiles.append((f.stem, _to_pixels(img)))
    logger.info("Loaded %d tiles from %s", len(tiles), folder)
    return tiles


def load_palette(
    directory: str | Path,
    prefix: str = "dali",
    color_space: str = "rgb",
) -> Palette:
    """Load the named tile set from *directory* and index it."""
    return Palette.from_images(
        load_tile_images(directory, prefix), color_space=color_space,
    )


def mosaic_output_path(
    original: str | Path,
    output_dir: str | Path,
    output_format: str = "png",
) -> Path:
    """``<output_dir>/<stem>_mosaic.<fmt>`` for a source photo."""
    return Path(output_dir) / f"{Path(original).stem}_mosaic.{output_format}"


def save_mosaic(array: np.ndarray, path: str | Path) -> Path:
    """Write *array* to *path* without ever exposing a half-written file.

    The image is encoded to a temporary file next to *path* and moved into
    place with :func:`os.replace`, with the permissions a plain write under
    the current umask would get. On failure the temporary file is removed
    and the error propagates.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.fromarray(np.ascontiguousarray(array, dtype=np.uint8))
    fmt = Image.registered_extensions().get(path.suffix.lower())

    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            img.save(fh, format=fmt)
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Saved %s", path)
    return path


def make_comparison_grid(
    original: np.ndarray,
    mosaic: np.ndarray,
    output_path: str | Path,
    max_panel_side: int = 512,
) -> None:
    """Create a 2-panel comparison: Original | Mosaic.

    Both panels are scaled so their longest side is at most
    *max_panel_side*, keeping the aspect ratio.
    """
    h, w = original.shape[:2]
    scale = min(1.0, max_panel_side / max(w, h))
    panel_w = max(1, round(w * scale))
    panel_h = max(1, round(h * scale))
    label_height = 36

    panels = [
        Image.fromarray(original).convert("RGB").resize((panel_w, panel_h), Image.LANCZOS),
        Image.fromarray(mosaic).convert("RGB").resize((panel_w, panel_h), Image.NEAREST),
    ]
    labels = ["Original", f"Mosaic {w}x{h}"]

    gap = 8
    total_w = len(panels) * panel_w + (len(panels) - 1) * gap
    total_h = panel_h + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=False)):
        x = i * (panel_w + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (panel_w - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    save_mosaic(np.array(canvas), output_path)
