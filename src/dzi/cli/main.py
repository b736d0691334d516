"""dzi CLI - build Deep Zoom pyramids from large images.

Command-line interface for tiling an image and inspecting the pyramid a
build would produce.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from dzi import __version__
from dzi.config import settings
from dzi.pyramid.config import TileFormat
from dzi.pyramid.exceptions import InvalidConfigError
from dzi.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="dzi",
    help="dzi: build Deep Zoom (.dzi) tile pyramids from large images",
    add_completion=False,
)


# =============================================================================
# Option parsing
# =============================================================================


def _parse_tile_format(value: str) -> str:
    """Normalise a format name to its file extension."""
    try:
        return TileFormat.parse(value).value
    except InvalidConfigError as e:
        raise typer.BadParameter(e.message) from None


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"dzi {__version__}")


@app.command()
def tile(  # noqa: PLR0913
    image_path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to the source image",
        ),
    ],
    tile_size: Annotated[
        int, typer.Option("--tile-size", "-t", help="Tile edge length in pixels")
    ] = settings.TILE_SIZE,
    overlap: Annotated[
        int, typer.Option("--overlap", help="Pixels shared with neighbouring tiles")
    ] = settings.OVERLAP,
    tile_format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            callback=_parse_tile_format,
            help="Tile encoding (jpg, jpeg or png)",
        ),
    ] = settings.TILE_FORMAT,
    quality: Annotated[
        int, typer.Option("--quality", "-q", help="JPEG quality (1-100)")
    ] = settings.JPEG_QUALITY,
    resample_filter: Annotated[
        str, typer.Option("--filter", help="Resampling filter (lanczos, bicubic, nearest, ...)")
    ] = settings.RESAMPLE_FILTER,
    workers: Annotated[
        int, typer.Option("--workers", "-w", help="Concurrent tile writers")
    ] = settings.WORKERS,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            file_okay=False,
            help="Directory for <name>.dzi and <name>_files (default: next to the image)",
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"
        ),
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Tile IMAGE into <name>_files/ and write <name>.dzi next to it."""
    from dzi.cli.runners import run_tiling  # noqa: PLC0415

    _configure_logging(verbose)
    logger = get_logger(__name__)
    logger.info("Tiling image", image=str(image_path))

    try:
        summary = run_tiling(
            image_path=image_path,
            tile_size=tile_size,
            overlap=overlap,
            tile_format=tile_format,
            quality=quality,
            resample_filter=resample_filter,
            workers=workers,
            output_dir=output_dir,
        )
    except Exception as e:
        logger.exception("Tiling failed")
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "descriptor": str(summary.descriptor_path),
                    "tiles_dir": str(summary.tiles_dir),
                    "levels": summary.level_count,
                    "tiles": summary.tile_count,
                    "elapsed_seconds": round(summary.elapsed_seconds, 3),
                },
                indent=2,
            )
        )
    else:
        typer.echo(f"Descriptor: {summary.descriptor_path}")
        typer.echo(f"Tiles: {summary.tile_count} in {summary.level_count} levels")


@app.command()
def info(
    image_path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to the source image",
        ),
    ],
    tile_size: Annotated[
        int, typer.Option("--tile-size", "-t", help="Tile edge length in pixels")
    ] = settings.TILE_SIZE,
    overlap: Annotated[
        int, typer.Option("--overlap", help="Pixels shared with neighbouring tiles")
    ] = settings.OVERLAP,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show the pyramid levels and tile grids IMAGE would produce."""
    from dzi.cli.runners import describe_pyramid  # noqa: PLC0415

    try:
        width, height, plans = describe_pyramid(image_path, tile_size, overlap)
    except Exception as e:
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "width": width,
                    "height": height,
                    "levels": [
                        {
                            "level": plan.level.index,
                            "width": plan.level.width,
                            "height": plan.level.height,
                            "columns": plan.grid.columns,
                            "rows": plan.grid.rows,
                        }
                        for plan in plans
                    ],
                    "tiles": sum(len(plan.grid) for plan in plans),
                },
                indent=2,
            )
        )
        return

    typer.echo(f"Image: {width}x{height}, {len(plans)} levels")
    for plan in plans:
        typer.echo(
            f"  level {plan.level.index:>2}: {plan.level.width}x{plan.level.height} "
            f"-> {plan.grid.columns}x{plan.grid.rows} tiles"
        )
    typer.echo(f"Total tiles: {sum(len(plan.grid) for plan in plans)}")


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":
    app()
