"""Tile crop and encode to the filesystem.

Tiles are encoded into a temporary sibling file and renamed into place, so a
tile only ever appears under its final ``{column}_{row}.{ext}`` name once it
is complete.
"""

from __future__ import annotations

import os
from pathlib import Path

from PIL import Image

from dzi.geometry import Region
from dzi.pyramid.config import TileFormat

# JPEG quality bounds (PIL accepts 1-100)
_JPEG_QUALITY_MIN = 1
_JPEG_QUALITY_MAX = 100

# Modes JPEG can encode directly; everything else is converted to RGB
_JPEG_MODES = frozenset({"RGB", "L", "CMYK"})


class FileTileSink:
    """Writes tiles as image files.

    Example:
        >>> sink = FileTileSink(jpeg_quality=85)
        >>> sink.write_tile(level_image, region, Path("out_files/10/1_0.jpg"), TileFormat.jpg)
    """

    __slots__ = ("_jpeg_quality",)

    def __init__(self, jpeg_quality: int = 90) -> None:
        """Initialize the sink.

        Args:
            jpeg_quality: JPEG encoding quality 1-100.

        Raises:
            ValueError: If jpeg_quality is not in range 1-100.
        """
        if not _JPEG_QUALITY_MIN <= jpeg_quality <= _JPEG_QUALITY_MAX:
            raise ValueError(
                f"jpeg_quality must be {_JPEG_QUALITY_MIN}-{_JPEG_QUALITY_MAX}, "
                f"got {jpeg_quality}"
            )
        self._jpeg_quality = jpeg_quality

    @property
    def jpeg_quality(self) -> int:
        return self._jpeg_quality

    def write_tile(
        self,
        bitmap: Image.Image,
        region: Region,
        destination: Path,
        fmt: TileFormat,
    ) -> None:
        """Crop ``region`` out of ``bitmap`` and save it to ``destination``.

        Raises:
            OSError: If the tile cannot be encoded or written.
        """
        tile = bitmap.crop(region.to_box())
        save_kwargs: dict[str, object] = {}
        if fmt is TileFormat.jpg:
            if tile.mode not in _JPEG_MODES:
                tile = tile.convert("RGB")
            save_kwargs["quality"] = self._jpeg_quality

        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(f".{destination.name}.partial")
        try:
            tile.save(partial, format=fmt.pil_format, **save_kwargs)
            os.replace(partial, destination)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
