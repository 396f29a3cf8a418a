"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

COLOR_SPACES = ("rgb", "lab")


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        leaf_threshold:  A region is filled with one tile once its width OR
                         its height drops below this many pixels.
        color_space:     Distance metric for tile matching - "rgb" or "lab".
        workers:         Threads for the four top-level quadrants (1 = serial).
        tile_prefix:     Tile files are named ``<prefix><n>.<ext>``.
        tile_dir:        Folder holding the reference tiles.
        output_format:   Image format for saved files.
        save_comparison: Generate an Original | Mosaic comparison image.
        input_dir:       Folder to scan for source photos (batch mode).
        output_dir:      Folder for results.
    """

    # Composition
    leaf_threshold: int = 10
    color_space: str = "rgb"
    workers: int = 1

    # Palette
    tile_prefix: str = "dali"
    tile_dir: Path = field(default_factory=lambda: Path("tiles"))

    # Output
    output_format: str = "png"
    save_comparison: bool = False

    # Paths
    input_dir: Path = field(default_factory=lambda: Path("images"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )

    def validate(self) -> None:
        """Raise ``ValueError`` for settings the engine cannot run with."""
        if self.leaf_threshold < 2:
            msg = f"leaf_threshold must be >= 2, got {self.leaf_threshold}"
            raise ValueError(msg)
        if self.workers < 1:
            msg = f"workers must be >= 1, got {self.workers}"
            raise ValueError(msg)
        if self.color_space not in COLOR_SPACES:
            available = ", ".join(COLOR_SPACES)
            msg = f"Unknown colour space '{self.color_space}'. Available: {available}"
            raise ValueError(msg)
