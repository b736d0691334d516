"""Pixel geometry shared by the tile grid and the tile sink.

Example:
    from dzi.geometry import Region, Size, check_within_bounds

    region = Region(x=253, y=0, width=256, height=255)
    check_within_bounds(region, Size(width=1000, height=1000))
"""

from dzi.geometry.primitives import Region, Size
from dzi.geometry.validators import RegionOutOfBoundsError, check_within_bounds

__all__ = [
    "Region",
    "RegionOutOfBoundsError",
    "Size",
    "check_within_bounds",
]
