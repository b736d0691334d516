"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from PIL import Image

from dzi.config import Settings
from dzi.geometry import Region
from dzi.pyramid.config import TileFormat
from dzi.utils.logging import clear_correlation_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        WORKERS=2,
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def make_image() -> Callable[..., Image.Image]:
    """Factory for small deterministic gradient images."""

    def _make(width: int, height: int, mode: str = "RGB") -> Image.Image:
        image = Image.new("RGB", (width, height))
        image.putdata(
            [
                (x * 255 // max(1, width - 1), y * 255 // max(1, height - 1), 128)
                for y in range(height)
                for x in range(width)
            ]
        )
        return image if mode == "RGB" else image.convert(mode)

    return _make


@pytest.fixture
def save_image(tmp_path: Path, make_image: Callable[..., Image.Image]) -> Callable[..., Path]:
    """Write a gradient image into tmp_path and return its path."""

    def _save(width: int, height: int, name: str = "photo.png", mode: str = "RGB") -> Path:
        path = tmp_path / name
        make_image(width, height, mode).save(path)
        return path

    return _save


class FakeBitmap:
    """Stand-in for a PIL image that only records its size."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.size = (width, height)


class RecordingResampler:
    """Resampler that returns FakeBitmaps and records every request."""

    def __init__(self, fail_at: tuple[int, int] | None = None) -> None:
        self.calls: list[tuple[int, int]] = []
        self._fail_at = fail_at

    def resample(self, bitmap: object, width: int, height: int) -> FakeBitmap:
        self.calls.append((width, height))
        if self._fail_at == (width, height):
            raise RuntimeError("resampler exploded")
        return FakeBitmap(width, height)


class RecordingSink:
    """TileSink that records writes instead of encoding anything."""

    def __init__(self, fail_on: Callable[[Path], bool] | None = None) -> None:
        self.writes: list[tuple[tuple[int, int], Region, Path, TileFormat]] = []
        self._fail_on = fail_on
        self._lock = threading.Lock()

    def write_tile(
        self, bitmap: FakeBitmap, region: Region, destination: Path, fmt: TileFormat
    ) -> None:
        if self._fail_on is not None and self._fail_on(destination):
            raise OSError(f"disk full writing {destination.name}")
        with self._lock:
            self.writes.append((bitmap.size, region, destination, fmt))


@pytest.fixture
def recording_resampler() -> RecordingResampler:
    return RecordingResampler()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fakes() -> type:
    """Expose the fake collaborator classes to tests that need custom ones."""

    class _Fakes:
        Bitmap = FakeBitmap
        Resampler = RecordingResampler
        Sink = RecordingSink

    return _Fakes
