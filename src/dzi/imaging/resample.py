"""Pillow-backed level resampling."""

from __future__ import annotations

from PIL import Image

from dzi.pyramid.exceptions import InvalidConfigError


def resampling_filter(name: str) -> Image.Resampling:
    """Look up a PIL resampling filter by case-insensitive name.

    Raises:
        InvalidConfigError: If no filter has that name.
    """
    try:
        return Image.Resampling[name.strip().upper()]
    except KeyError:
        supported = ", ".join(f.name.lower() for f in Image.Resampling)
        raise InvalidConfigError(
            f"Unknown resampling filter '{name}'. Supported: {supported}"
        ) from None


class PillowResampler:
    """Scales the source to each level's exact dimensions.

    Image.resize() never mutates its input, so the shared source bitmap
    stays read-only.
    """

    __slots__ = ("_filter",)

    def __init__(self, filter_name: str = "lanczos") -> None:
        self._filter = resampling_filter(filter_name)

    @property
    def filter(self) -> Image.Resampling:
        return self._filter

    def resample(self, bitmap: Image.Image, width: int, height: int) -> Image.Image:
        if bitmap.size == (width, height):
            return bitmap
        return bitmap.resize((width, height), resample=self._filter)
