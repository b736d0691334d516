"""CLI module for dzi.

Provides the command-line interface for tiling images into Deep Zoom
pyramids and inspecting the planned level layout.
"""

from __future__ import annotations

from dzi.cli.main import app

__all__ = ["app"]
