"""mb-util style ``metadata.json`` describing an exported tile tree."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable

from tpkexport.core.models import ExportSummary, TilePackage
from tpkexport.logging import get_logger

from .writer import tile_extension

LOGGER = get_logger(__name__)

METADATA_FILENAME = "metadata.json"


def build_metadata(package: TilePackage, zoom_levels: Iterable[int]) -> Dict[str, str]:
    zooms = sorted(set(zoom_levels))
    payload = {
        "name": package.name,
        "description": package.description,
        "summary": package.summary,
        "tags": package.tags,
        "version": package.version,
        "attribution": package.attribution,
        "credits": package.credits,
        "use_constraints": package.use_constraints,
        "type": "baselayer",
        "format": tile_extension(package.format),
        "bounds": ",".join(f"{value:.6f}" for value in package.bounds),
    }
    if zooms:
        payload["minzoom"] = str(zooms[0])
        payload["maxzoom"] = str(zooms[-1])
    if package.legend:
        payload["legend"] = json.dumps(
            [
                {
                    "name": layer.name,
                    "elements": [
                        {key: value for key, value in (("imageData", element.image_data), ("label", element.label)) if value is not None}
                        for element in layer.elements
                    ],
                }
                for layer in package.legend
            ]
        )
    return payload


def write_metadata(path: Path, payload: Dict[str, str], *, indent: int = 2) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=indent, sort_keys=True), encoding="utf-8")
    LOGGER.info("wrote tileset metadata", extra={"path": str(path)})


def write_summary(summary: ExportSummary, path: Path, *, indent: int = 2) -> None:
    """Persist an export summary as JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
