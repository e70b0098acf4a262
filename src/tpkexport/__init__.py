"""Export ArcGIS tile packages to plain zoom/column/row tile trees."""

from __future__ import annotations

import importlib
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "BundleLocator",
    "CompactBundleReader",
    "ExportConfig",
    "ExportSummary",
    "PackageReader",
    "TileExporter",
    "TilePackage",
    "TileStoreWriter",
    "open_package",
    "resolve_zoom",
]

_MODULE_MAP = {
    "BundleLocator": ("tpkexport.bundles", "BundleLocator"),
    "CompactBundleReader": ("tpkexport.bundles", "CompactBundleReader"),
    "ExportConfig": ("tpkexport.config", "ExportConfig"),
    "ExportSummary": ("tpkexport.core", "ExportSummary"),
    "PackageReader": ("tpkexport.package", "PackageReader"),
    "TileExporter": ("tpkexport.export", "TileExporter"),
    "TilePackage": ("tpkexport.core", "TilePackage"),
    "TileStoreWriter": ("tpkexport.export", "TileStoreWriter"),
    "open_package": ("tpkexport.package", "open_package"),
    "resolve_zoom": ("tpkexport.tiling", "resolve_zoom"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'tpkexport' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
