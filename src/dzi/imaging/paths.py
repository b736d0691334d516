"""Output layout of a pyramid on disk.

For a source ``/data/photo.tif`` the pyramid is written next to it::

    /data/photo.dzi
    /data/photo_files/{level}/{column}_{row}.{format}

Viewers resolve tiles by exactly this pattern relative to the descriptor.
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple, Self

from dzi.pyramid.config import TileFormat
from dzi.pyramid.exceptions import SourceImageError

DESCRIPTOR_SUFFIX = ".dzi"
TILES_DIR_SUFFIX = "_files"


class PyramidPaths(NamedTuple):
    """Locations of a pyramid's descriptor and tile tree.

    Attributes:
        descriptor_path: The ``<name>.dzi`` file.
        tiles_dir: The ``<name>_files`` directory holding level folders.
    """

    descriptor_path: Path
    tiles_dir: Path

    @classmethod
    def for_name(cls, directory: Path | str, name: str) -> Self:
        """Lay out a pyramid called ``name`` inside ``directory``."""
        directory = Path(directory)
        return cls(
            descriptor_path=directory / f"{name}{DESCRIPTOR_SUFFIX}",
            tiles_dir=directory / f"{name}{TILES_DIR_SUFFIX}",
        )

    @classmethod
    def for_source(cls, image_path: Path | str, output_dir: Path | str | None = None) -> Self:
        """Lay out the pyramid of ``image_path``.

        Args:
            image_path: Source image file.
            output_dir: Directory to write into. Defaults to the directory
                containing the source image.

        Raises:
            SourceImageError: If no base name can be derived from the path.
        """
        image_path = Path(image_path)
        stem = image_path.stem
        if not stem or stem in (".", ".."):
            raise SourceImageError("Could not find base name of image", path=image_path)
        directory = Path(output_dir) if output_dir is not None else image_path.parent
        return cls.for_name(directory, stem)

    def level_dir(self, level: int) -> Path:
        return self.tiles_dir / str(level)

    def tile_path(self, level: int, column: int, row: int, fmt: TileFormat) -> Path:
        """Return ``{tiles_dir}/{level}/{column}_{row}.{ext}``."""
        return self.level_dir(level) / f"{column}_{row}.{fmt.value}"
