"""Pixel rectangles in level-local coordinates.

(0, 0) is the top-left pixel of a level. Right and bottom edges are
exclusive, matching the box convention of ``PIL.Image.crop``.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, NonNegativeInt, PositiveInt


class Size(BaseModel, frozen=True):
    """Pixel extent of a level."""

    width: PositiveInt
    height: PositiveInt

    def to_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)


class Region(BaseModel, frozen=True):
    """Crop rectangle of a tile.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Horizontal extent, at least one pixel.
        height: Vertical extent, at least one pixel.
    """

    x: NonNegativeInt
    y: NonNegativeInt
    width: PositiveInt
    height: PositiveInt

    @classmethod
    def from_edges(cls, left: int, top: int, right: int, bottom: int) -> Self:
        """Build a region from its four edges.

        Raises:
            pydantic.ValidationError: If right <= left or bottom <= top.
        """
        return cls(x=left, y=top, width=right - left, height=bottom - top)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_tuple(self) -> tuple[int, int, int, int]:
        """Return ``(x, y, width, height)``."""
        return (self.x, self.y, self.width, self.height)

    def to_box(self) -> tuple[int, int, int, int]:
        """Return the ``(left, upper, right, lower)`` box for ``Image.crop``."""
        return (self.x, self.y, self.right, self.bottom)
