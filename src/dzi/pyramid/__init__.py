"""Pyramid core for dzi.

This package contains the Deep Zoom pyramid engine: level planning, tile
grid computation, the descriptor model, and build orchestration. It never
decodes, resamples or encodes pixels itself; those are delegated to the
collaborators in ``dzi.imaging``.

Public API:
    - LevelPlanner, Level: Level sequence from 1x1 to full resolution.
    - TileGrid, Tile: Tile grid and crop regions of one level.
    - PyramidConfig, TileFormat: Validated build parameters.
    - Descriptor: ``.dzi`` data holder and XML codec.
    - PyramidBuilder, BuildSummary: Build orchestration.
"""

from dzi.pyramid.builder import (
    BuildSummary,
    LevelPlan,
    PyramidBuilder,
    TileOutcome,
    plan_pyramid,
)
from dzi.pyramid.config import PyramidConfig, TileFormat
from dzi.pyramid.descriptor import DEEPZOOM_NAMESPACE, Descriptor
from dzi.pyramid.exceptions import (
    BuildCancelledError,
    BuildError,
    DescriptorIoError,
    DZIError,
    InvalidConfigError,
    InvalidDimensionError,
    SourceImageError,
)
from dzi.pyramid.grid import Tile, TileGrid
from dzi.pyramid.levels import Level, LevelPlanner

__all__ = [
    "DEEPZOOM_NAMESPACE",
    "BuildCancelledError",
    "BuildError",
    "BuildSummary",
    "DZIError",
    "Descriptor",
    "DescriptorIoError",
    "InvalidConfigError",
    "InvalidDimensionError",
    "Level",
    "LevelPlan",
    "LevelPlanner",
    "PyramidBuilder",
    "PyramidConfig",
    "SourceImageError",
    "Tile",
    "TileFormat",
    "TileGrid",
    "TileOutcome",
    "plan_pyramid",
]
