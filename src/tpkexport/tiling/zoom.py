"""Map cache resolutions onto Web Mercator zoom levels."""

from __future__ import annotations

import math

WORLD_CIRCUMFERENCE = 40075016.69  # metres at the equator
TILE_PIXEL_SIZE = 256
BUNDLE_DIM = 128  # bundles hold 128 x 128 tiles


def resolve_zoom(resolution: float, tile_size: int = TILE_PIXEL_SIZE) -> int:
    """Return the standard tile pyramid zoom closest to ``resolution``.

    ``resolution`` is in ground metres per pixel. Non-canonical resolutions
    snap to the nearest integer zoom; anything coarser than a single world
    tile resolves to zoom 0.
    """

    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")
    if tile_size <= 0:
        raise ValueError(f"tile_size must be positive, got {tile_size}")
    exact = math.log2(WORLD_CIRCUMFERENCE / (resolution * tile_size))
    # half rounds up
    return max(0, int(math.floor(exact + 0.5)))


def max_tile_index(zoom: int) -> int:
    """Return the largest valid column/row index at ``zoom``."""

    return (1 << zoom) - 1


def tile_in_range(value: int, zoom: int) -> bool:
    return 0 <= value <= max_tile_index(zoom)
