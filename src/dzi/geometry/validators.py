"""Bounds checks for tile crop rectangles.

A rectangle that leaves its level is a planning bug, so it is reported and
never clipped.
"""

from __future__ import annotations

from dzi.geometry.primitives import Region, Size


class RegionOutOfBoundsError(ValueError):
    """A crop rectangle extends past the right or bottom edge of its level.

    Attributes:
        region: The offending rectangle.
        bounds: The level extent it was checked against.
    """

    def __init__(self, region: Region, bounds: Size) -> None:
        self.region = region
        self.bounds = bounds
        problems = []
        if region.right > bounds.width:
            problems.append(f"right edge {region.right} > width {bounds.width}")
        if region.bottom > bounds.height:
            problems.append(f"bottom edge {region.bottom} > height {bounds.height}")
        super().__init__(
            f"Region {region.to_tuple()} leaves level {bounds.to_tuple()}: "
            + ", ".join(problems)
        )


def check_within_bounds(region: Region, bounds: Size) -> None:
    """Raise RegionOutOfBoundsError unless ``region`` lies inside ``bounds``."""
    if region.right > bounds.width or region.bottom > bounds.height:
        raise RegionOutOfBoundsError(region, bounds)
