"""Deep Zoom level planning.

A Deep Zoom pyramid halves the image repeatedly until it is a single pixel.
Level 0 is that smallest image and level ``max_level`` is the source at full
resolution, where::

    max_level = ceil(log2(max(width, height)))
    scale(L) = 2 ** (max_level - L)
    level_width(L) = max(1, ceil(width / scale(L)))

Everything here is exact integer arithmetic, so the top level always
reproduces the source dimensions without rounding drift.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple

from dzi.pyramid.exceptions import InvalidDimensionError


class Level(NamedTuple):
    """One resolution step of the pyramid.

    Attributes:
        index: Level index (0 = smallest, max_level = full resolution).
        width: Level width in pixels (>= 1).
        height: Level height in pixels (>= 1).
        scale: Downsample factor relative to full resolution (a power of 2).
    """

    index: int
    width: int
    height: int
    scale: int


def _ceil_div(value: int, divisor: int) -> int:
    return -(-value // divisor)


def validate_dimensions(width: int, height: int) -> None:
    """Check that both dimensions are positive integers.

    Raises:
        InvalidDimensionError: If either dimension is not a positive int.
    """
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDimensionError(f"{name} must be an integer, got {value!r}")
        if value <= 0:
            raise InvalidDimensionError(f"{name} must be positive, got {value}")


def max_level_for(width: int, height: int) -> int:
    """Return ceil(log2(max(width, height))), the index of the top level."""
    validate_dimensions(width, height)
    return (max(width, height) - 1).bit_length()


class LevelPlanner:
    """Derives the pyramid level sequence from full-resolution dimensions.

    The planner is immutable. Iterating it yields a fresh, lazy sequence of
    Level values in ascending index order each time, so it can be consumed
    any number of times.

    Example:
        >>> planner = LevelPlanner(1000, 1000)
        >>> planner.max_level
        10
        >>> planner[10]
        Level(index=10, width=1000, height=1000, scale=1)
        >>> planner[0]
        Level(index=0, width=1, height=1, scale=1024)
    """

    __slots__ = ("_height", "_max_level", "_width")

    def __init__(self, width: int, height: int) -> None:
        """Initialize the planner.

        Args:
            width: Full-resolution width in pixels.
            height: Full-resolution height in pixels.

        Raises:
            InvalidDimensionError: If either dimension is <= 0.
        """
        self._max_level = max_level_for(width, height)
        self._width = width
        self._height = height

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def max_level(self) -> int:
        """Index of the full-resolution level."""
        return self._max_level

    @property
    def level_count(self) -> int:
        return self._max_level + 1

    def level(self, index: int) -> Level:
        """Compute a single level.

        Args:
            index: Level index in 0..max_level.

        Returns:
            The Level at that index.

        Raises:
            IndexError: If index is outside 0..max_level.
        """
        if not 0 <= index <= self._max_level:
            raise IndexError(
                f"level {index} out of range (0..{self._max_level})"
            )
        scale = 1 << (self._max_level - index)
        return Level(
            index=index,
            width=max(1, _ceil_div(self._width, scale)),
            height=max(1, _ceil_div(self._height, scale)),
            scale=scale,
        )

    def levels(self) -> tuple[Level, ...]:
        """Return all levels, smallest first."""
        return tuple(self)

    def __getitem__(self, index: int) -> Level:
        return self.level(index)

    def __len__(self) -> int:
        return self.level_count

    def __iter__(self) -> Iterator[Level]:
        for index in range(self.level_count):
            yield self.level(index)

    def __repr__(self) -> str:
        return f"LevelPlanner(width={self._width}, height={self._height})"
