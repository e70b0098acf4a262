"""Tile pyramid math for tpkexport."""

from .zoom import (
    BUNDLE_DIM,
    TILE_PIXEL_SIZE,
    WORLD_CIRCUMFERENCE,
    max_tile_index,
    resolve_zoom,
    tile_in_range,
)

__all__ = [
    "BUNDLE_DIM",
    "TILE_PIXEL_SIZE",
    "WORLD_CIRCUMFERENCE",
    "max_tile_index",
    "resolve_zoom",
    "tile_in_range",
]
