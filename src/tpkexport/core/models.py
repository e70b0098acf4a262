"""Dataclasses describing tile packages and export results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tpkexport.tiling.zoom import tile_in_range

MIXED_FORMAT = "mixed"


@dataclass(frozen=True)
class LevelOfDetail:
    """One rung of the cache resolution ladder."""

    level_id: int
    resolution: float
    zoom_level: int


@dataclass(frozen=True)
class LegendElement:
    """A legend swatch encoded as a data URI with an optional label."""

    image_data: str
    label: Optional[str] = None


@dataclass(frozen=True)
class LegendLayer:
    name: str
    elements: Tuple[LegendElement, ...] = ()


@dataclass(frozen=True)
class TilePackage:
    """Metadata and tiling scheme read from an extracted tile package."""

    format: str
    tile_size: int
    lods: Tuple[LevelOfDetail, ...]
    zoom_levels: Tuple[int, ...]
    name: str = ""
    summary: str = ""
    tags: str = ""
    description: str = ""
    credits: str = ""
    use_constraints: str = ""
    bounds: Tuple[float, ...] = ()
    legend: Tuple[LegendLayer, ...] = ()
    version: str = "1.0.0"
    attribution: str = ""
    staging_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        if len(self.lods) != len(self.zoom_levels):
            raise ValueError("zoom_levels must be index-aligned with lods")

    @property
    def lod_zooms(self) -> Dict[int, int]:
        """Return the LOD ordinal to zoom level table."""

        return {lod.level_id: zoom for lod, zoom in zip(self.lods, self.zoom_levels)}

    @property
    def is_mixed(self) -> bool:
        return self.format.strip().lower() == MIXED_FORMAT


@dataclass(frozen=True)
class BundleFile:
    """A compact-cache bundle and the grid address decoded from its path."""

    path: Path
    lod_id: int
    row_offset: int
    column_offset: int
    zoom_level: Optional[int] = None


@dataclass(frozen=True)
class TileAddress:
    zoom: int
    column: int
    row: int

    @property
    def in_range(self) -> bool:
        return tile_in_range(self.column, self.zoom) and tile_in_range(self.row, self.zoom)

    def __str__(self) -> str:
        return f"{self.zoom}/{self.column}/{self.row}"


@dataclass(frozen=True)
class SkippedBundle:
    path: Path
    reason: str


@dataclass(frozen=True)
class TileFailure:
    address: TileAddress
    bundle: Path
    reason: str


@dataclass
class BundleReport:
    """Counters collected while exporting a single bundle."""

    bundle: BundleFile
    tiles_written: int = 0
    tiles_empty: int = 0
    tiles_out_of_range: int = 0
    failures: List[TileFailure] = field(default_factory=list)
    skipped: Optional[SkippedBundle] = None
    # Set when cancellation stopped the bundle before its last slot.
    cancelled: bool = False


@dataclass
class ExportSummary:
    """Aggregated outcome of an export run."""

    zoom_levels: Tuple[int, ...] = ()
    bundles_found: int = 0
    bundles_exported: int = 0
    bundles_cancelled: int = 0
    tiles_written: int = 0
    tiles_empty: int = 0
    tiles_out_of_range: int = 0
    skipped_bundles: List[SkippedBundle] = field(default_factory=list)
    failed_tiles: List[TileFailure] = field(default_factory=list)
    cancelled: bool = False

    def merge(self, report: BundleReport) -> None:
        if report.skipped is not None:
            self.skipped_bundles.append(report.skipped)
            return
        if report.cancelled:
            self.bundles_cancelled += 1
        else:
            self.bundles_exported += 1
        self.tiles_written += report.tiles_written
        self.tiles_empty += report.tiles_empty
        self.tiles_out_of_range += report.tiles_out_of_range
        self.failed_tiles.extend(report.failures)

    @property
    def has_failures(self) -> bool:
        return bool(self.skipped_bundles or self.failed_tiles)

    @property
    def succeeded(self) -> bool:
        """True when tiles were produced with nothing skipped or cancelled."""

        return self.tiles_written > 0 and not self.has_failures and not self.cancelled

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zoom_levels": list(self.zoom_levels),
            "bundles_found": self.bundles_found,
            "bundles_exported": self.bundles_exported,
            "bundles_cancelled": self.bundles_cancelled,
            "tiles_written": self.tiles_written,
            "tiles_empty": self.tiles_empty,
            "tiles_out_of_range": self.tiles_out_of_range,
            "cancelled": self.cancelled,
            "skipped_bundles": [
                {"path": str(item.path), "reason": item.reason} for item in self.skipped_bundles
            ],
            "failed_tiles": [
                {"tile": str(item.address), "bundle": str(item.bundle), "reason": item.reason}
                for item in self.failed_tiles
            ],
        }
