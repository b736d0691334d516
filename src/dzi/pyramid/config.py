"""Pyramid configuration: tile size, overlap and tile encoding."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from dzi.pyramid.exceptions import InvalidConfigError

DEFAULT_TILE_SIZE = 254
DEFAULT_OVERLAP = 1


class TileFormat(str, Enum):
    """Tile encoding. The value is the file extension written to disk."""

    jpg = "jpg"
    png = "png"

    @property
    def pil_format(self) -> str:
        """Return the format name understood by PIL's Image.save()."""
        return "JPEG" if self is TileFormat.jpg else "PNG"

    @classmethod
    def parse(cls, value: str | TileFormat) -> TileFormat:
        """Parse a format name, accepting ``jpeg`` as an alias of ``jpg``.

        Raises:
            InvalidConfigError: If the name is not a supported format.
        """
        if isinstance(value, TileFormat):
            return value
        name = value.strip().lower().lstrip(".")
        if name == "jpeg":
            name = "jpg"
        try:
            return cls(name)
        except ValueError:
            supported = ", ".join(f.value for f in cls)
            raise InvalidConfigError(
                f"Unsupported tile format '{value}'. Supported: {supported}"
            ) from None


def validate_tile_params(tile_size: int, overlap: int) -> None:
    """Check a tile size / overlap pair.

    Raises:
        InvalidConfigError: If tile_size <= 0, overlap < 0 or
            overlap >= tile_size.
    """
    if isinstance(tile_size, bool) or not isinstance(tile_size, int):
        raise InvalidConfigError(f"tile_size must be an integer, got {tile_size!r}")
    if isinstance(overlap, bool) or not isinstance(overlap, int):
        raise InvalidConfigError(f"overlap must be an integer, got {overlap!r}")
    if tile_size <= 0:
        raise InvalidConfigError(f"tile_size must be positive, got {tile_size}")
    if overlap < 0:
        raise InvalidConfigError(f"overlap must be non-negative, got {overlap}")
    if overlap >= tile_size:
        raise InvalidConfigError(
            f"overlap ({overlap}) must be smaller than tile_size ({tile_size})"
        )


@dataclass(frozen=True)
class PyramidConfig:
    """Immutable parameters of one pyramid build.

    Validated on construction, so an invalid combination fails before any
    image is opened or resampled.

    Attributes:
        tile_size: Edge length of a tile's core region in pixels.
        overlap: Pixels shared with each neighbouring tile.
        format: Tile encoding.
    """

    tile_size: int = DEFAULT_TILE_SIZE
    overlap: int = DEFAULT_OVERLAP
    format: TileFormat = TileFormat.jpg

    def __post_init__(self) -> None:
        validate_tile_params(self.tile_size, self.overlap)
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "format", TileFormat.parse(self.format))
