"""Source image loading.

A SourceImage is decoded once and shared read-only by every resample and
crop of a build.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Self

from PIL import Image, UnidentifiedImageError

from dzi.pyramid.exceptions import SourceImageError
from dzi.pyramid.levels import validate_dimensions

# Deep Zoom sources are expected to be huge
Image.MAX_IMAGE_PIXELS = None

_RGB_CHANNELS = 3


@dataclass(frozen=True)
class SourceImage:
    """Decoded full-resolution source of a pyramid.

    Attributes:
        bitmap: The decoded image.
        path: File the image was loaded from, if any.
    """

    bitmap: Image.Image
    path: Path | None = None

    def __post_init__(self) -> None:
        validate_dimensions(self.bitmap.width, self.bitmap.height)

    @property
    def width(self) -> int:
        return self.bitmap.width

    @property
    def height(self) -> int:
        return self.bitmap.height

    @property
    def dimensions(self) -> tuple[int, int]:
        """Return full-resolution dimensions as (width, height)."""
        return (self.bitmap.width, self.bitmap.height)

    @classmethod
    def open(cls, path: Path | str) -> Self:
        """Open and fully decode an image file.

        Args:
            path: Path to any image format Pillow can read.

        Returns:
            The decoded SourceImage.

        Raises:
            SourceImageError: If the file is missing or cannot be decoded.
        """
        path = Path(path)
        if not path.is_file():
            raise SourceImageError("File not found", path=path)
        try:
            with Image.open(path) as handle:
                handle.load()
                bitmap = handle.copy()
        except (UnidentifiedImageError, OSError) as e:
            raise SourceImageError(f"Unsupported source image: {e}", path=path) from e
        return cls(bitmap=bitmap, path=path)

    @staticmethod
    def probe(path: Path | str) -> tuple[int, int]:
        """Read an image's (width, height) from its header only.

        Raises:
            SourceImageError: If the file is missing or not an image.
        """
        path = Path(path)
        if not path.is_file():
            raise SourceImageError("File not found", path=path)
        try:
            with Image.open(path) as handle:
                return handle.size
        except (UnidentifiedImageError, OSError) as e:
            raise SourceImageError(f"Unsupported source image: {e}", path=path) from e

    @classmethod
    def from_rgb_bytes(cls, data: bytes, width: int, height: int) -> Self:
        """Wrap raw interleaved 8-bit RGB pixel data.

        Args:
            data: ``width * height * 3`` bytes, row-major, RGB order.
            width: Image width in pixels.
            height: Image height in pixels.

        Raises:
            InvalidDimensionError: If width or height is not positive.
            SourceImageError: If the buffer length does not match the
                dimensions.
        """
        validate_dimensions(width, height)
        expected = width * height * _RGB_CHANNELS
        if len(data) != expected:
            raise SourceImageError(
                f"Input dimensions do not match RGB data length: "
                f"{width}x{height} needs {expected} bytes, got {len(data)}"
            )
        return cls(bitmap=Image.frombytes("RGB", (width, height), bytes(data)))

