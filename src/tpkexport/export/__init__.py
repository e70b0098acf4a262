"""Tile tree export for tpkexport."""

from .exporter import TileExporter, iter_bundle_slots
from .metadata import build_metadata, write_metadata, write_summary
from .writer import TileStoreWriter, tile_extension

__all__ = [
    "TileExporter",
    "TileStoreWriter",
    "build_metadata",
    "iter_bundle_slots",
    "tile_extension",
    "write_metadata",
    "write_summary",
]
