"""Collaborator protocols for the pyramid builder.

The builder never touches pixels itself. It sees the source bitmap only
through a Resampler, which produces one bitmap per level, and a TileSink,
which crops and encodes one tile of such a bitmap to a destination file.
"""

from pathlib import Path
from typing import Protocol

from PIL import Image

from dzi.geometry import Region
from dzi.pyramid.config import TileFormat


class Resampler(Protocol):
    """Scales a bitmap to arbitrary dimensions.

    Implementations must be safe to call while other threads crop tiles
    out of previously returned bitmaps.
    """

    def resample(self, bitmap: Image.Image, width: int, height: int) -> Image.Image:
        """Return ``bitmap`` scaled to exactly ``width`` x ``height``."""
        ...


class TileSink(Protocol):
    """Crops, encodes and stores one tile.

    Called concurrently from worker threads with the same read-only level
    bitmap. Failures are reported by raising.
    """

    def write_tile(
        self,
        bitmap: Image.Image,
        region: Region,
        destination: Path,
        fmt: TileFormat,
    ) -> None:
        """Crop ``region`` out of ``bitmap`` and write it to ``destination``."""
        ...
