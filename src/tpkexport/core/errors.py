"""Exception hierarchy for tile package exports."""

from __future__ import annotations


class TpkExportError(RuntimeError):
    """Base class for all export failures."""


class ContainerReadError(TpkExportError):
    """Raised when the package archive or one of its documents cannot be read."""


class PackageFormatError(TpkExportError):
    """Raised when a required package field is malformed or missing."""


class UnsupportedFormatError(TpkExportError):
    """Raised when the package uses a tile codec that cannot be exported."""


class AddressParseError(TpkExportError):
    """Raised when a bundle path does not follow the ``L##/R####C####`` grammar."""


class TileIOError(TpkExportError):
    """Raised when a single tile cannot be fetched or written."""
