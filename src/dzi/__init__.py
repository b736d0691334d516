"""dzi: Deep Zoom pyramid tiler.

Converts a single large raster image into a Deep Zoom pyramid: a ``.dzi``
descriptor plus a ``<name>_files/`` directory of overlapping tiles, one
subdirectory per resolution level.
"""

__version__ = "0.1.0"
