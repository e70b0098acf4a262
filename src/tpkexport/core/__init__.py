"""Core data models and errors for tpkexport."""

from .errors import (
    AddressParseError,
    ContainerReadError,
    PackageFormatError,
    TileIOError,
    TpkExportError,
    UnsupportedFormatError,
)
from .models import (
    BundleFile,
    BundleReport,
    ExportSummary,
    LegendElement,
    LegendLayer,
    LevelOfDetail,
    SkippedBundle,
    TileAddress,
    TileFailure,
    TilePackage,
)

__all__ = [
    "AddressParseError",
    "BundleFile",
    "BundleReport",
    "ContainerReadError",
    "ExportSummary",
    "LegendElement",
    "LegendLayer",
    "LevelOfDetail",
    "PackageFormatError",
    "SkippedBundle",
    "TileAddress",
    "TileFailure",
    "TileIOError",
    "TilePackage",
    "TpkExportError",
    "UnsupportedFormatError",
]
