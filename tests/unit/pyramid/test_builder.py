"""Unit tests for PyramidBuilder orchestration.

Tests PyramidBuilder with recording collaborators including:
- One resample per level, one sink call per tile
- Destination naming and descriptor written last
- Fail-fast on resampler and tile sink errors
- Cancellation
- Idempotent tile identities across runs
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest

from dzi.imaging import PyramidPaths, SourceImage
from dzi.pyramid import (
    BuildCancelledError,
    BuildError,
    Descriptor,
    DescriptorIoError,
    InvalidConfigError,
    InvalidDimensionError,
    PyramidBuilder,
    PyramidConfig,
    TileFormat,
)
from dzi.utils.logging import current_correlation_context, set_correlation_context


@pytest.fixture
def paths(tmp_path: Path) -> PyramidPaths:
    return PyramidPaths.for_name(tmp_path, "photo")


def _source(fakes: Any, width: int, height: int) -> SourceImage:
    return SourceImage(bitmap=fakes.Bitmap(width, height))


class TestBuild:
    """Tests for the happy path."""

    def test_resamples_once_per_level(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.build(_source(fakes, 1000, 1000), paths)

        assert len(recording_resampler.calls) == 11
        assert recording_resampler.calls[0] == (1, 1)
        assert recording_resampler.calls[-1] == (1000, 1000)

    def test_tile_count_matches_grids(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        summary = builder.build(_source(fakes, 1000, 1000), paths)

        # Levels 0-8 are single tiles (<= 254px), level 9 is 500px (2x2), level 10 is 4x4
        assert summary.tile_count == 9 + 4 + 16
        assert len(recording_sink.writes) == summary.tile_count
        assert summary.level_count == 11

    def test_destinations_follow_deep_zoom_layout(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(
            PyramidConfig(format=TileFormat.png), recording_resampler, recording_sink
        )
        builder.build(_source(fakes, 1000, 1000), paths)

        destinations = {dest for _, _, dest, _ in recording_sink.writes}
        assert paths.tiles_dir / "10" / "3_3.png" in destinations
        assert paths.tiles_dir / "0" / "0_0.png" in destinations
        assert all(fmt is TileFormat.png for _, _, _, fmt in recording_sink.writes)

    def test_tiles_are_cut_from_their_level_bitmap(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.build(_source(fakes, 1000, 1000), paths)

        for size, region, dest, _ in recording_sink.writes:
            level = int(dest.parent.name)
            assert region.right <= size[0]
            assert region.bottom <= size[1]
            if level == 10:
                assert size == (1000, 1000)

    def test_scenario_regions_at_top_level(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.build(_source(fakes, 1000, 1000), paths)

        regions = {dest: region for _, region, dest, _ in recording_sink.writes}
        assert regions[paths.tiles_dir / "10" / "0_0.jpg"].to_tuple() == (0, 0, 255, 255)
        assert regions[paths.tiles_dir / "10" / "1_0.jpg"].x == 253

    def test_writes_descriptor(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(
            PyramidConfig(tile_size=128, overlap=2), recording_resampler, recording_sink
        )
        summary = builder.build(_source(fakes, 300, 200), paths)

        assert summary.descriptor_path == paths.descriptor_path
        assert Descriptor.read(paths.descriptor_path) == Descriptor(
            tile_size=128, overlap=2, format="jpg", width=300, height=200
        )
        assert summary.descriptor == Descriptor.read(paths.descriptor_path)

    def test_creates_level_directories(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.build(_source(fakes, 5, 3), paths)
        assert sorted(p.name for p in paths.tiles_dir.iterdir()) == ["0", "1", "2", "3"]

    def test_progress_callback(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        events: list[tuple[int, int, int]] = []
        builder = PyramidBuilder(
            PyramidConfig(),
            recording_resampler,
            recording_sink,
            progress_callback=lambda level, done, total: events.append((level, done, total)),
        )
        builder.build(_source(fakes, 600, 300), paths)

        top = [e for e in events if e[0] == 10]
        assert [done for _, done, _ in top] == list(range(1, 7))
        assert all(total == 6 for _, _, total in top)

    def test_idempotent_tile_identities(
        self, fakes: Any, paths: PyramidPaths
    ) -> None:
        def run() -> set[tuple[str, tuple[int, int, int, int]]]:
            sink = fakes.Sink()
            PyramidBuilder(PyramidConfig(), fakes.Resampler(), sink, workers=3).build(
                _source(fakes, 777, 555), paths
            )
            return {(str(dest), region.to_tuple()) for _, region, dest, _ in sink.writes}

        first = run()
        second = run()
        assert first == second
        assert len(first) == len({dest for dest, _ in first})


class TestPlan:
    """Tests for PyramidBuilder.plan."""

    def test_plan_matches_build(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        plans = builder.plan(5184, 3456)
        assert len(plans) == 14
        assert plans[-1].grid.size == (21, 14)
        assert plans[1].level[1:3] == (2, 1)
        assert recording_resampler.calls == []

    def test_plan_rejects_bad_dimensions(
        self, recording_resampler: Any, recording_sink: Any
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        with pytest.raises(InvalidDimensionError):
            builder.plan(0, 10)


class TestFailures:
    """Tests for fail-fast behavior."""

    def test_invalid_config_fails_before_resampling(self, recording_resampler: Any) -> None:
        with pytest.raises(InvalidConfigError):
            PyramidConfig(tile_size=0)
        with pytest.raises(InvalidConfigError):
            PyramidConfig(tile_size=254, overlap=254)
        assert recording_resampler.calls == []

    def test_invalid_workers(self, recording_resampler: Any, recording_sink: Any) -> None:
        with pytest.raises(ValueError, match="workers"):
            PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink, workers=0)

    def test_resampler_failure_is_tagged(
        self, fakes: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        resampler = fakes.Resampler(fail_at=(250, 250))
        builder = PyramidBuilder(PyramidConfig(), resampler, recording_sink)

        with pytest.raises(BuildError) as exc_info:
            builder.build(_source(fakes, 1000, 1000), paths)

        error = exc_info.value
        assert error.stage == "resample"
        assert error.level == 8
        assert isinstance(error.__cause__, RuntimeError)
        assert not paths.descriptor_path.exists()

    def test_tile_failure_aborts_build(
        self, fakes: Any, recording_resampler: Any, paths: PyramidPaths
    ) -> None:
        sink = fakes.Sink(fail_on=lambda dest: dest.parent.name == "10" and dest.stem == "2_1")
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, sink, workers=2)

        with pytest.raises(BuildError) as exc_info:
            builder.build(_source(fakes, 1000, 1000), paths)

        error = exc_info.value
        assert not isinstance(error, BuildCancelledError)
        assert (error.stage, error.level, error.column, error.row) == ("tile", 10, 2, 1)
        assert error.path == paths.tiles_dir / "10" / "2_1.jpg"
        assert isinstance(error.__cause__, OSError)
        assert "tile=2_1" in str(error)
        # Lower levels completed, the failing level stopped early
        assert len(sink.writes) < 9 + 4 + 16
        assert not paths.descriptor_path.exists()

    def test_cancel_before_build(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.cancel()
        assert builder.cancelled

        with pytest.raises(BuildCancelledError):
            builder.build(_source(fakes, 1000, 1000), paths)
        assert recording_resampler.calls == []
        assert recording_sink.writes == []

    def test_cancel_during_level_lets_inflight_finish(
        self, fakes: Any, recording_resampler: Any, paths: PyramidPaths
    ) -> None:
        started = threading.Event()
        release = threading.Event()
        builder: PyramidBuilder

        class SlowSink(fakes.Sink):  # type: ignore[misc,name-defined]
            def write_tile(self, bitmap: Any, region: Any, destination: Path, fmt: Any) -> None:
                if destination.parent.name == "10":
                    started.set()
                    release.wait(timeout=5)
                super().write_tile(bitmap, region, destination, fmt)

        sink = SlowSink()
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, sink, workers=1)

        def cancel_when_started() -> None:
            started.wait(timeout=5)
            builder.cancel()
            release.set()

        canceller = threading.Thread(target=cancel_when_started)
        canceller.start()
        try:
            with pytest.raises(BuildCancelledError) as exc_info:
                builder.build(_source(fakes, 1000, 1000), paths)
        finally:
            release.set()
            canceller.join()

        assert exc_info.value.level == 10
        top_writes = [w for w in sink.writes if w[2].parent.name == "10"]
        # The in-flight tile completed; nothing new was started after cancel
        assert 1 <= len(top_writes) < 16
        assert not paths.descriptor_path.exists()

    def test_descriptor_directory_is_created(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, tmp_path: Path
    ) -> None:
        paths = PyramidPaths(
            descriptor_path=tmp_path / "viewer" / "pyramids" / "photo.dzi",
            tiles_dir=tmp_path / "photo_files",
        )
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.build(_source(fakes, 20, 10), paths)

        assert Descriptor.read(paths.descriptor_path).width == 20

    def test_unwritable_descriptor_location_raises_descriptor_error(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("regular file")
        paths = PyramidPaths(
            descriptor_path=blocker / "sub" / "photo.dzi",
            tiles_dir=tmp_path / "photo_files",
        )
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)

        with pytest.raises(DescriptorIoError) as exc_info:
            builder.build(_source(fakes, 20, 10), paths)

        assert exc_info.value.path == paths.descriptor_path
        assert isinstance(exc_info.value.__cause__, OSError)
        # Tiles were all written before the descriptor step
        assert len(recording_sink.writes) == 6


class TestCorrelationContext:
    """Correlation keys are scoped to a single build."""

    class _ContextResampler:
        """Records the correlation keys visible while each level is resampled."""

        def __init__(self, fakes: Any) -> None:
            self.seen: list[dict[str, Any]] = []
            self._bitmap = fakes.Bitmap

        def resample(self, bitmap: Any, width: int, height: int) -> Any:
            self.seen.append(current_correlation_context())
            return self._bitmap(width, height)

    def test_keys_are_set_during_build(
        self, fakes: Any, recording_sink: Any, paths: PyramidPaths, tmp_path: Path
    ) -> None:
        resampler = self._ContextResampler(fakes)
        source = SourceImage(bitmap=fakes.Bitmap(4, 4), path=tmp_path / "scan.tif")
        PyramidBuilder(PyramidConfig(), resampler, recording_sink).build(source, paths)

        assert [seen["pyramid_level"] for seen in resampler.seen] == [0, 1, 2]
        assert {seen["source"] for seen in resampler.seen} == {"scan.tif"}
        assert len({seen["build_id"] for seen in resampler.seen}) == 1

    def test_keys_are_cleared_after_build(
        self,
        fakes: Any,
        recording_resampler: Any,
        recording_sink: Any,
        paths: PyramidPaths,
        tmp_path: Path,
    ) -> None:
        source = SourceImage(bitmap=fakes.Bitmap(4, 4), path=tmp_path / "scan.tif")
        PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink).build(source, paths)

        assert current_correlation_context() == {}

    def test_keys_are_cleared_after_failed_build(
        self, fakes: Any, recording_sink: Any, paths: PyramidPaths, tmp_path: Path
    ) -> None:
        resampler = fakes.Resampler(fail_at=(4, 4))
        source = SourceImage(bitmap=fakes.Bitmap(4, 4), path=tmp_path / "scan.tif")

        with pytest.raises(BuildError):
            PyramidBuilder(PyramidConfig(), resampler, recording_sink).build(source, paths)
        assert current_correlation_context() == {}

    def test_second_build_does_not_inherit_source(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, tmp_path: Path
    ) -> None:
        builder = PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink)
        builder.build(
            SourceImage(bitmap=fakes.Bitmap(4, 4), path=tmp_path / "first.tif"),
            PyramidPaths.for_name(tmp_path, "first"),
        )

        resampler = self._ContextResampler(fakes)
        PyramidBuilder(PyramidConfig(), resampler, recording_sink).build(
            SourceImage(bitmap=fakes.Bitmap(4, 4)), PyramidPaths.for_name(tmp_path, "raw")
        )

        assert all("source" not in seen for seen in resampler.seen)

    def test_caller_context_is_restored(
        self, fakes: Any, recording_resampler: Any, recording_sink: Any, paths: PyramidPaths
    ) -> None:
        set_correlation_context(build_id="outer")
        PyramidBuilder(PyramidConfig(), recording_resampler, recording_sink).build(
            _source(fakes, 4, 4), paths
        )

        assert current_correlation_context() == {"build_id": "outer"}
