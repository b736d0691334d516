"""Imaging layer for dzi.

Pillow-backed implementations of everything the pyramid core delegates:
decoding the source, resampling it per level, cropping and encoding tiles,
and laying the result out on disk.

Key Components:
    - SourceImage: Decoded, read-only source bitmap
    - PillowResampler: Resampler implementation
    - FileTileSink: TileSink implementation with atomic file writes
    - PyramidPaths: ``<name>.dzi`` / ``<name>_files`` layout
    - Resampler, TileSink: Protocols the builder depends on
"""

from dzi.imaging.paths import PyramidPaths
from dzi.imaging.resample import PillowResampler, resampling_filter
from dzi.imaging.sink import FileTileSink
from dzi.imaging.source import SourceImage
from dzi.imaging.types import Resampler, TileSink

__all__ = [
    "FileTileSink",
    "PillowResampler",
    "PyramidPaths",
    "Resampler",
    "SourceImage",
    "TileSink",
    "resampling_filter",
]
