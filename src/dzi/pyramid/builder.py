"""Pyramid build orchestration.

The build walks the levels from smallest to full resolution. Each level is
resampled once from the shared source bitmap, then every tile of the level
is handed to a bounded thread pool that crops and encodes it through the
tile sink. The descriptor is written last, so a pyramid on disk without its
``.dzi`` is never mistaken for a finished one.

Failure Behavior:
    Work items never raise. Each returns a TileOutcome, and the level loop
    stops at the first failed outcome: queued items are cancelled, in-flight
    writes are allowed to finish, and a BuildError naming the level and
    tile is raised. Nothing is retried.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from dzi.pyramid.config import PyramidConfig
from dzi.pyramid.descriptor import Descriptor
from dzi.pyramid.exceptions import BuildCancelledError, BuildError
from dzi.pyramid.grid import Tile, TileGrid
from dzi.pyramid.levels import Level, LevelPlanner
from dzi.utils.logging import correlation_context, get_logger, set_correlation_context

if TYPE_CHECKING:
    from PIL import Image

    from dzi.imaging.paths import PyramidPaths
    from dzi.imaging.source import SourceImage
    from dzi.imaging.types import Resampler, TileSink

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, int], None]
"""Called as (level_index, tiles_done, tiles_total) after each tile."""

_DEFAULT_WORKERS = 4


class LevelPlan(NamedTuple):
    """A level together with its tile grid."""

    level: Level
    grid: TileGrid


class TileOutcome(NamedTuple):
    """Result of one tile work item.

    Attributes:
        tile: The tile that was processed.
        destination: File the tile was written to.
        error: The collaborator failure, or None on success.
    """

    tile: Tile
    destination: Path
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BuildSummary:
    """Result of a completed build.

    Attributes:
        descriptor: The descriptor that was written.
        descriptor_path: Location of the ``.dzi`` file.
        tiles_dir: Root of the tile tree.
        level_count: Number of levels produced.
        tile_count: Total number of tiles written.
        elapsed_seconds: Wall-clock build time.
    """

    descriptor: Descriptor
    descriptor_path: Path
    tiles_dir: Path
    level_count: int
    tile_count: int
    elapsed_seconds: float


def plan_pyramid(width: int, height: int, config: PyramidConfig) -> Iterator[LevelPlan]:
    """Yield every level with its tile grid, smallest level first.

    Pure planning: no pixels are read and nothing is written.

    Raises:
        InvalidDimensionError: If width or height is not positive.
    """
    for level in LevelPlanner(width, height):
        yield LevelPlan(
            level=level,
            grid=TileGrid(
                level.width,
                level.height,
                config.tile_size,
                config.overlap,
                level=level.index,
            ),
        )


class PyramidBuilder:
    """Builds a Deep Zoom pyramid from a source image.

    Example:
        >>> from dzi.imaging import FileTileSink, PillowResampler, PyramidPaths, SourceImage
        >>> builder = PyramidBuilder(PyramidConfig(), PillowResampler(), FileTileSink())
        >>> source = SourceImage.open("photo.tif")
        >>> summary = builder.build(source, PyramidPaths.for_source("photo.tif"))
    """

    def __init__(
        self,
        config: PyramidConfig,
        resampler: Resampler,
        sink: TileSink,
        *,
        workers: int = _DEFAULT_WORKERS,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            config: Validated pyramid parameters.
            resampler: Produces one bitmap per level.
            sink: Crops and encodes tiles.
            workers: Maximum number of concurrent tile writes.
            progress_callback: Optional callback(level, done, total).

        Raises:
            ValueError: If workers < 1.
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self._config = config
        self._resampler = resampler
        self._sink = sink
        self._workers = workers
        self._progress_callback = progress_callback
        self._cancelled = threading.Event()

    @property
    def config(self) -> PyramidConfig:
        return self._config

    def cancel(self) -> None:
        """Stop issuing new work; in-flight tile writes still complete.

        Safe to call from any thread. The running build() raises
        BuildCancelledError once in-flight work has drained.
        """
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def plan(self, width: int, height: int) -> list[LevelPlan]:
        """Return the level/grid plan for a source of the given size."""
        return list(plan_pyramid(width, height, self._config))

    def build(self, source: SourceImage, paths: PyramidPaths) -> BuildSummary:
        """Build every level and tile, then write the descriptor.

        Args:
            source: Decoded source image, shared read-only by all workers.
            paths: Output layout.

        Returns:
            BuildSummary of the finished pyramid.

        Raises:
            InvalidDimensionError: If the source has non-positive dimensions.
            BuildError: If resampling or writing any tile fails.
            BuildCancelledError: If cancel() was called during the build.
            DescriptorIoError: If the descriptor cannot be written.
        """
        started = time.monotonic()
        width, height = source.width, source.height
        # Validates dimensions before any I/O
        plans = self.plan(width, height)

        with correlation_context(
            build_id=uuid.uuid4().hex[:12],
            source=source.path.name if source.path is not None else None,
        ):
            return self._run(source, paths, plans, started)

    def _run(
        self,
        source: SourceImage,
        paths: PyramidPaths,
        plans: list[LevelPlan],
        started: float,
    ) -> BuildSummary:
        width, height = source.width, source.height
        logger.info(
            "Starting pyramid build",
            width=width,
            height=height,
            levels=len(plans),
            tile_size=self._config.tile_size,
            overlap=self._config.overlap,
            format=self._config.format.value,
        )

        tile_count = 0
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="dzi-tile"
        ) as executor:
            for plan in plans:
                tile_count += self._build_level(executor, source, plan, paths)

        descriptor = Descriptor.from_config(self._config, width, height)
        descriptor.write(paths.descriptor_path)

        elapsed = time.monotonic() - started
        logger.info(
            "Pyramid build complete",
            tiles=tile_count,
            descriptor=str(paths.descriptor_path),
            elapsed_seconds=round(elapsed, 3),
        )
        return BuildSummary(
            descriptor=descriptor,
            descriptor_path=paths.descriptor_path,
            tiles_dir=paths.tiles_dir,
            level_count=len(plans),
            tile_count=tile_count,
            elapsed_seconds=elapsed,
        )

    def _check_cancelled(self, level: int) -> None:
        if self._cancelled.is_set():
            raise BuildCancelledError("Build cancelled", stage="tile", level=level)

    def _resample_level(self, source: SourceImage, level: Level) -> Image.Image:
        try:
            return self._resampler.resample(source.bitmap, level.width, level.height)
        except Exception as e:
            raise BuildError(
                f"Failed to resample to {level.width}x{level.height}: {e}",
                stage="resample",
                level=level.index,
            ) from e

    def _write_tile(
        self, bitmap: Image.Image, tile: Tile, destination: Path
    ) -> TileOutcome:
        if self._cancelled.is_set():
            return TileOutcome(tile, destination, BuildCancelledError("Build cancelled"))
        try:
            self._sink.write_tile(bitmap, tile.region, destination, self._config.format)
        except Exception as e:
            return TileOutcome(tile, destination, e)
        return TileOutcome(tile, destination)

    def _build_level(
        self,
        executor: ThreadPoolExecutor,
        source: SourceImage,
        plan: LevelPlan,
        paths: PyramidPaths,
    ) -> int:
        """Resample one level and write all of its tiles.

        Returns:
            Number of tiles written.
        """
        level, grid = plan
        self._check_cancelled(level.index)
        set_correlation_context(pyramid_level=level.index)
        logger.debug(
            "Building level",
            width=level.width,
            height=level.height,
            columns=grid.columns,
            rows=grid.rows,
        )

        bitmap = self._resample_level(source, level)
        level_dir = paths.level_dir(level.index)
        try:
            level_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildError(
                f"Failed to create level directory: {e}",
                level_dir,
                stage="tile",
                level=level.index,
            ) from e

        pending: set[Future[TileOutcome]] = set()
        total = len(grid)
        done_count = 0
        failure: TileOutcome | None = None
        tiles = iter(grid)
        # At most 2x workers items queued so cancellation takes effect quickly
        max_pending = self._workers * 2

        while True:
            while failure is None and not self._cancelled.is_set() and len(pending) < max_pending:
                tile = next(tiles, None)
                if tile is None:
                    break
                destination = paths.tile_path(
                    level.index, tile.column, tile.row, self._config.format
                )
                pending.add(executor.submit(self._write_tile, bitmap, tile, destination))

            if not pending:
                break

            finished, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in finished:
                if future.cancelled():
                    continue
                outcome = future.result()
                if outcome.ok:
                    done_count += 1
                    if self._progress_callback is not None:
                        self._progress_callback(level.index, done_count, total)
                elif failure is None and not isinstance(outcome.error, BuildCancelledError):
                    failure = outcome

            if failure is not None:
                for future in pending:
                    future.cancel()

        if failure is not None:
            tile = failure.tile
            logger.error(
                "Tile write failed",
                column=tile.column,
                row=tile.row,
                error=str(failure.error),
            )
            raise BuildError(
                f"Failed to write tile: {failure.error}",
                failure.destination,
                stage="tile",
                level=level.index,
                column=tile.column,
                row=tile.row,
            ) from failure.error

        if done_count < total:
            raise BuildCancelledError(
                f"Build cancelled after {done_count}/{total} tiles",
                stage="tile",
                level=level.index,
            )

        logger.debug("Level complete", tiles=done_count)
        return done_count
