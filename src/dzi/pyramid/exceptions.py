"""Custom exceptions for pyramid planning and building.

Validation errors (dimensions, configuration) are raised before any I/O
starts. Failures from the resampler or tile sink are wrapped in BuildError
with the stage and tile coordinate at which they happened.
"""

from pathlib import Path


class DZIError(Exception):
    """Base exception for all dzi errors."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize error with optional path context.

        Args:
            message: Human-readable error description.
            path: File involved in the failure, if any.
        """
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with path context if available."""
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class InvalidDimensionError(DZIError):
    """Raised when source or level dimensions are not positive integers."""

    pass


class InvalidConfigError(DZIError):
    """Raised for an illegal tile size / overlap / format combination.

    This error is raised when:
    - tile_size is not a positive integer
    - overlap is negative
    - overlap is not strictly smaller than tile_size
    - the tile format is not one of the supported encodings
    """

    pass


class SourceImageError(DZIError):
    """Raised when the source image cannot be used.

    This error is raised when:
    - The file does not exist or cannot be decoded
    - A raw RGB buffer does not match the declared dimensions
    - No output name can be derived from the source path
    """

    pass


class BuildError(DZIError):
    """Raised when a collaborator fails during a pyramid build.

    The original exception is chained as ``__cause__``. The build is
    aborted; no partial pyramid is reported as complete.
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        *,
        stage: str | None = None,
        level: int | None = None,
        column: int | None = None,
        row: int | None = None,
    ) -> None:
        """Initialize build error with coordinate context.

        Args:
            message: Human-readable error description.
            path: Destination file involved, if any.
            stage: Build stage that failed ("resample", "tile", ...).
            level: Pyramid level being processed.
            column: Tile column within the level.
            row: Tile row within the level.
        """
        self.stage = stage
        self.level = level
        self.column = column
        self.row = row
        super().__init__(message, path)

    def _format_message(self) -> str:
        """Format error message with full coordinate context."""
        parts = [self.message]
        if self.stage is not None:
            parts.append(f"stage={self.stage}")
        if self.level is not None:
            parts.append(f"level={self.level}")
        if self.column is not None and self.row is not None:
            parts.append(f"tile={self.column}_{self.row}")
        if self.path:
            parts.append(f"path={self.path}")

        if len(parts) == 1:
            return parts[0]
        return f"{parts[0]} ({', '.join(parts[1:])})"


class BuildCancelledError(BuildError):
    """Raised when a build is cancelled before all tiles were written."""

    pass


class DescriptorIoError(DZIError):
    """Raised when the .dzi descriptor cannot be written or parsed."""

    pass
