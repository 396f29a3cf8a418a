"""Rectangular sub-areas of the target image."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Region:
    """Offset + extent of a rectangle, relative to the full output buffer."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def full(cls, width: int, height: int) -> Region:
        return cls(0, 0, width, height)

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def slices(self) -> tuple[slice, slice]:
        """(rows, cols) index into an (H, W, C) array."""
        return (
            slice(self.y, self.y + self.height),
            slice(self.x, self.x + self.width),
        )

    def quadrants(self) -> tuple[Region, Region, Region, Region]:
        """Split into upper-left, upper-right, lower-left, lower-right.

        The left / upper halves get ``n // 2`` pixels; the right / lower
        halves absorb any odd remainder.
        """
        left_w = self.width // 2
        top_h = self.height // 2
        right_w = self.width - left_w
        bottom_h = self.height - top_h
        mid_x = self.x + left_w
        mid_y = self.y + top_h
        return (
            Region(self.x, self.y, left_w, top_h),
            Region(mid_x, self.y, right_w, top_h),
            Region(self.x, mid_y, left_w, bottom_h),
            Region(mid_x, mid_y, right_w, bottom_h),
        )
