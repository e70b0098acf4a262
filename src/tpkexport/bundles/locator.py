"""Discover compact cache bundles and decode their grid addresses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Tuple

from tpkexport.core.errors import AddressParseError
from tpkexport.core.models import BundleFile, SkippedBundle
from tpkexport.logging import get_logger

LOGGER = get_logger(__name__)

LAYERS_DIRNAME = "_alllayers"
BUNDLE_SUFFIX = ".bundle"

_BUNDLE_NAME = re.compile(r"R(?P<row>[0-9A-F]{4})C(?P<column>[0-9A-F]{4})", re.IGNORECASE)
_LOD_FOLDER = re.compile(r"L(?P<lod>[0-9]+)")


@dataclass
class BundleDiscovery:
    bundles: List[BundleFile] = field(default_factory=list)
    skipped: List[SkippedBundle] = field(default_factory=list)


def find_bundle_paths(staging_root: Path) -> List[Path]:
    """Return every bundle file below the cache layer directories."""

    paths = set()
    for layers_dir in staging_root.rglob(LAYERS_DIRNAME):
        if not layers_dir.is_dir():
            continue
        paths.update(
            path for path in layers_dir.rglob(f"*{BUNDLE_SUFFIX}") if path.is_file()
        )
    return sorted(paths)


def parse_bundle_address(filename: str, parent_folder_name: str) -> Tuple[int, int, int]:
    """Decode ``(row_offset, column_offset, lod_id)`` from a bundle path.

    ``filename`` looks like ``R0080C0100.bundle`` with hexadecimal offsets and
    ``parent_folder_name`` like ``L07`` with a decimal LOD ordinal.
    """

    stem = filename
    if stem.lower().endswith(BUNDLE_SUFFIX):
        stem = stem[: -len(BUNDLE_SUFFIX)]
    name_match = _BUNDLE_NAME.fullmatch(stem)
    if name_match is None:
        raise AddressParseError(f"Bundle name {filename!r} does not match R####C####")
    folder_match = _LOD_FOLDER.fullmatch(parent_folder_name)
    if folder_match is None:
        raise AddressParseError(f"Bundle folder {parent_folder_name!r} does not match L##")
    return (
        int(name_match.group("row"), 16),
        int(name_match.group("column"), 16),
        int(folder_match.group("lod")),
    )


class BundleLocator:
    """Resolve bundle files against a package's LOD to zoom table."""

    def __init__(self, lod_zooms: Mapping[int, int]) -> None:
        self._lod_zooms = dict(lod_zooms)

    def discover_bundles(self, staging_root: Path) -> BundleDiscovery:
        discovery = BundleDiscovery()
        for path in find_bundle_paths(staging_root):
            try:
                row_offset, column_offset, lod_id = parse_bundle_address(path.name, path.parent.name)
            except AddressParseError as exc:
                LOGGER.warning("skipping bundle", extra={"path": str(path), "reason": str(exc)})
                discovery.skipped.append(SkippedBundle(path=path, reason=str(exc)))
                continue
            zoom_level = self._lod_zooms.get(lod_id)
            if zoom_level is None:
                LOGGER.debug("bundle LOD not in ladder", extra={"path": str(path), "lod": lod_id})
            discovery.bundles.append(
                BundleFile(
                    path=path,
                    lod_id=lod_id,
                    row_offset=row_offset,
                    column_offset=column_offset,
                    zoom_level=zoom_level,
                )
            )
        LOGGER.info(
            "discovered bundles",
            extra={"root": str(staging_root), "bundles": len(discovery.bundles), "skipped": len(discovery.skipped)},
        )
        return discovery

    @staticmethod
    def select(bundles: Iterable[BundleFile], zoom_levels: Iterable[int]) -> List[BundleFile]:
        """Keep bundles whose resolved zoom is one of ``zoom_levels``."""

        wanted = set(zoom_levels)
        return [bundle for bundle in bundles if bundle.zoom_level is not None and bundle.zoom_level in wanted]
