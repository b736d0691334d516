"""Tile grid computation for a single pyramid level.

A level of ``W x H`` pixels is cut into ``ceil(W / ts) x ceil(H / ts)``
tiles. Each tile has a *core* region (its share of the level, no overlap)
and a *crop* region: the core grown by ``overlap`` pixels towards every
neighbouring tile and clamped to the level. No overlap is added along the
outer edge of the image, and the decision is made per axis, so a level
that is one tile wide and several tiles tall only overlaps vertically.

For tile_size=254, overlap=1 on a 1000 x 1000 level:

    tile (0, 0): core (0, 0, 254, 254)    crop (0, 0, 255, 255)
    tile (1, 0): core (254, 0, 254, 254)  crop (253, 0, 256, 255)
    tile (3, 3): core (762, 762, 238, 238) crop (761, 761, 239, 239)
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple

from dzi.geometry import Region, Size, check_within_bounds
from dzi.pyramid.config import validate_tile_params
from dzi.pyramid.levels import validate_dimensions

class Tile(NamedTuple):
    """One addressable tile of a level.

    Attributes:
        level: Pyramid level index.
        column: Tile column (0 = leftmost).
        row: Tile row (0 = topmost).
        region: Crop rectangle including overlap, in level pixels.
        core: Non-overlapping share of the level covered by this tile.
    """

    level: int
    column: int
    row: int
    region: Region
    core: Region

    @property
    def name(self) -> str:
        """Return the ``{column}_{row}`` stem used for the tile file."""
        return f"{self.column}_{self.row}"


def _axis_span(
    index: int, count: int, extent: int, tile_size: int, overlap: int
) -> tuple[int, int, int, int]:
    """Return (core_start, core_end, crop_start, crop_end) along one axis."""
    core_start = index * tile_size
    core_end = min(core_start + tile_size, extent)
    crop_start = core_start - overlap if index > 0 else core_start
    crop_end = core_end + overlap if index < count - 1 else core_end
    return core_start, core_end, max(0, crop_start), min(extent, crop_end)


class TileGrid:
    """Tile grid of one level.

    Pure function of its inputs: iterating the grid lazily yields every
    Tile in row-major order (rows top to bottom, columns left to right),
    and can be repeated.

    Example:
        >>> grid = TileGrid(1000, 1000, tile_size=254, overlap=1, level=10)
        >>> grid.size
        (4, 4)
        >>> grid.tile(1, 0).region.to_tuple()
        (253, 0, 256, 255)
    """

    __slots__ = ("_columns", "_height", "_level", "_overlap", "_rows", "_tile_size", "_width")

    def __init__(
        self,
        width: int,
        height: int,
        tile_size: int,
        overlap: int,
        *,
        level: int = 0,
    ) -> None:
        """Initialize the grid.

        Args:
            width: Level width in pixels.
            height: Level height in pixels.
            tile_size: Core tile edge length in pixels.
            overlap: Overlap with each neighbouring tile in pixels.
            level: Level index stamped onto produced tiles.

        Raises:
            InvalidConfigError: If tile_size <= 0, overlap < 0 or
                overlap >= tile_size.
            InvalidDimensionError: If width or height is not positive.
        """
        validate_tile_params(tile_size, overlap)
        validate_dimensions(width, height)
        self._width = width
        self._height = height
        self._tile_size = tile_size
        self._overlap = overlap
        self._level = level
        self._columns = -(-width // tile_size)
        self._rows = -(-height // tile_size)

    @property
    def level(self) -> int:
        return self._level

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def size(self) -> tuple[int, int]:
        """Return the grid dimensions as (columns, rows)."""
        return (self._columns, self._rows)

    @property
    def bounds(self) -> Size:
        """Return the level dimensions every region must fit in."""
        return Size(width=self._width, height=self._height)

    def tile(self, column: int, row: int) -> Tile:
        """Compute the tile at (column, row).

        Raises:
            IndexError: If the address is outside the grid.
            RegionOutOfBoundsError: If the computed region leaves the level.
        """
        if not (0 <= column < self._columns and 0 <= row < self._rows):
            raise IndexError(
                f"tile ({column}, {row}) outside {self._columns}x{self._rows} grid"
            )
        cx0, cx1, x0, x1 = _axis_span(
            column, self._columns, self._width, self._tile_size, self._overlap
        )
        cy0, cy1, y0, y1 = _axis_span(
            row, self._rows, self._height, self._tile_size, self._overlap
        )
        core = Region.from_edges(cx0, cy0, cx1, cy1)
        region = Region.from_edges(x0, y0, x1, y1)
        check_within_bounds(region, self.bounds)
        return Tile(
            level=self._level, column=column, row=row, region=region, core=core
        )

    def __iter__(self) -> Iterator[Tile]:
        for row in range(self._rows):
            for column in range(self._columns):
                yield self.tile(column, row)

    def __len__(self) -> int:
        return self._columns * self._rows

    def __repr__(self) -> str:
        return (
            f"TileGrid(width={self._width}, height={self._height}, "
            f"tile_size={self._tile_size}, overlap={self._overlap}, level={self._level})"
        )

