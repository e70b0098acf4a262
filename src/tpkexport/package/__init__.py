"""Tile package reading for tpkexport."""

from .reader import PackageReader, open_package

__all__ = ["PackageReader", "open_package"]
