"""CLI runners for tiling and inspection.

This module provides the execution logic for the CLI commands, wiring the
Pillow collaborators from ``dzi.imaging`` into the pyramid core.
"""

from __future__ import annotations

import signal
from pathlib import Path
from types import FrameType

from dzi.imaging import FileTileSink, PillowResampler, PyramidPaths, SourceImage
from dzi.pyramid import (
    BuildSummary,
    LevelPlan,
    PyramidBuilder,
    PyramidConfig,
    TileFormat,
    plan_pyramid,
)
from dzi.utils.logging import get_logger

logger = get_logger(__name__)


def run_tiling(  # noqa: PLR0913
    *,
    image_path: Path,
    tile_size: int,
    overlap: int,
    tile_format: str,
    quality: int,
    resample_filter: str,
    workers: int,
    output_dir: Path | None = None,
) -> BuildSummary:
    """Build the Deep Zoom pyramid of one image.

    All parameters are validated before the image is decoded.

    Raises:
        InvalidConfigError: For an illegal tile size / overlap / format / filter.
        SourceImageError: If the image cannot be read.
        BuildError: If resampling or writing a tile fails.
        DescriptorIoError: If the descriptor cannot be written.
    """
    config = PyramidConfig(
        tile_size=tile_size, overlap=overlap, format=TileFormat.parse(tile_format)
    )
    builder = PyramidBuilder(
        config,
        PillowResampler(resample_filter),
        FileTileSink(jpeg_quality=quality),
        workers=workers,
    )
    paths = PyramidPaths.for_source(image_path, output_dir)
    source = SourceImage.open(image_path)
    logger.info(
        "Source loaded",
        width=source.width,
        height=source.height,
        mode=source.bitmap.mode,
    )

    # First Ctrl-C drains in-flight tiles; a second one interrupts immediately
    def _on_sigint(signum: int, frame: FrameType | None) -> None:
        _ = signum, frame
        logger.warning("Interrupt received, cancelling build")
        builder.cancel()
        signal.signal(signal.SIGINT, previous)

    previous = signal.getsignal(signal.SIGINT)
    try:
        signal.signal(signal.SIGINT, _on_sigint)
    except ValueError:
        # Not in the main thread (e.g. under a test runner); no handler
        return builder.build(source, paths)
    try:
        return builder.build(source, paths)
    finally:
        signal.signal(signal.SIGINT, previous)


def describe_pyramid(
    image_path: Path, tile_size: int, overlap: int
) -> tuple[int, int, list[LevelPlan]]:
    """Plan the pyramid of an image without decoding its pixels.

    Returns:
        (width, height, plans) where plans lists every level and grid.
    """
    config = PyramidConfig(tile_size=tile_size, overlap=overlap)
    width, height = SourceImage.probe(image_path)
    return width, height, list(plan_pyramid(width, height, config))
