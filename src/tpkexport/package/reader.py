"""Read tiling scheme and descriptive metadata out of a tile package."""

from __future__ import annotations

import json
import tempfile
import xml.etree.ElementTree as ET
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from tpkexport.core.errors import ContainerReadError, PackageFormatError
from tpkexport.core.models import LegendElement, LegendLayer, LevelOfDetail, TilePackage
from tpkexport.logging import get_logger
from tpkexport.tiling.zoom import resolve_zoom

LOGGER = get_logger(__name__)

CONF_XML = Path("v101/Map/conf.xml")
ITEMINFO_XML = Path("esriinfo/iteminfo.xml")
MAPSERVER_JSON = Path("servicedescriptions/mapserver/mapserver.json")

EXTENT_KEYS = ("xmin", "ymin", "xmax", "ymax")
REQUIRED_ITEM_FIELDS = ("title", "summary", "tags")


class PackageReader:
    """Stage a tile package in a scoped temporary directory and parse it."""

    def __init__(self, container_path: Path | str, *, staging_parent: Optional[Path] = None) -> None:
        if not str(container_path).strip():
            raise ContainerReadError("No tile package path supplied")
        path = Path(container_path)
        if not path.is_file():
            raise ContainerReadError(f"Tile package not found: {path}")
        if path.suffix.lower() != ".tpk":
            LOGGER.warning("package does not use the .tpk extension", extra={"path": str(path)})
        self._path = path
        self._staging_parent = staging_parent

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def open(self) -> Iterator[TilePackage]:
        """Yield the parsed package; the staging directory is removed on exit."""

        if self._staging_parent is not None:
            self._staging_parent.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="tpkexport_", dir=self._staging_parent) as tmp_dir:
            staging_root = Path(tmp_dir)
            self.extract(staging_root)
            yield self.read(staging_root)
        LOGGER.debug("released staging directory", extra={"staging_dir": str(staging_root)})

    def extract(self, destination: Path) -> None:
        LOGGER.info("extracting tile package", extra={"path": str(self._path), "staging_dir": str(destination)})
        try:
            with zipfile.ZipFile(self._path) as archive:
                archive.extractall(destination)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ContainerReadError(f"Unable to extract tile package {self._path}: {exc}") from exc

    def read(self, staging_root: Path) -> TilePackage:
        """Build a :class:`TilePackage` from an extracted package tree."""

        conf = _parse_xml(staging_root / CONF_XML)
        tile_format = _require_text(conf, "CacheTileFormat", CONF_XML)
        tile_size = _parse_int(_require_text(conf, "TileCols", CONF_XML), "TileCols")
        if tile_size <= 0:
            raise PackageFormatError(f"TileCols must be positive, got {tile_size}")
        lods = _read_lods(conf, tile_size)

        item_info = _parse_xml(staging_root / ITEMINFO_XML)
        item_fields = _read_item_info(item_info)

        service = _parse_json(staging_root / MAPSERVER_JSON)
        bounds = _read_bounds(service)
        legend = _read_legend(service)

        package = TilePackage(
            format=tile_format,
            tile_size=tile_size,
            lods=tuple(lods),
            zoom_levels=tuple(lod.zoom_level for lod in lods),
            name=item_fields["title"],
            summary=item_fields["summary"],
            tags=item_fields["tags"],
            description=item_fields["description"],
            credits=item_fields["accessinformation"],
            use_constraints=item_fields["licenseinfo"],
            bounds=bounds,
            legend=legend,
            attribution=item_fields["accessinformation"],
            staging_dir=staging_root,
        )
        LOGGER.info(
            "loaded tile package",
            extra={
                "package_name": package.name,
                "format": package.format,
                "tile_size": package.tile_size,
                "lods": len(package.lods),
                "zoom_levels": list(package.zoom_levels),
            },
        )
        return package


@contextmanager
def open_package(container_path: Path | str, *, staging_parent: Optional[Path] = None) -> Iterator[TilePackage]:
    """Convenience wrapper around :meth:`PackageReader.open`."""

    reader = PackageReader(container_path, staging_parent=staging_parent)
    with reader.open() as package:
        yield package


def _parse_xml(path: Path) -> ET.Element:
    if not path.is_file():
        raise ContainerReadError(f"Required package document missing: {path.name}")
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise PackageFormatError(f"Unable to parse {path.name}: {exc}") from exc


def _parse_json(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ContainerReadError(f"Required package document missing: {path.name}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise PackageFormatError(f"Unable to parse {path.name}: {exc}") from exc
    if not isinstance(payload, dict):
        raise PackageFormatError(f"{path.name} must contain a JSON object")
    return payload


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _iter_named(root: ET.Element, name: str) -> Iterator[ET.Element]:
    for element in root.iter():
        if isinstance(element.tag, str) and _local_name(element.tag) == name:
            yield element


def _find(root: ET.Element, name: str) -> Optional[ET.Element]:
    return next(_iter_named(root, name), None)


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _require_text(root: ET.Element, name: str, document: Path) -> str:
    value = _text(_find(root, name))
    if not value:
        raise PackageFormatError(f"{document.name} is missing <{name}>")
    return value


def _parse_int(value: str, field_name: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise PackageFormatError(f"{field_name} must be an integer, got {value!r}") from exc


def _parse_float(value: str, field_name: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise PackageFormatError(f"{field_name} must be numeric, got {value!r}") from exc


def _read_lods(conf: ET.Element, tile_size: int) -> List[LevelOfDetail]:
    lods: List[LevelOfDetail] = []
    for element in _iter_named(conf, "LODInfo"):
        level_id = _parse_int(_text(_find(element, "LevelID")), "LevelID")
        resolution = _parse_float(_text(_find(element, "Resolution")), "Resolution")
        if resolution <= 0:
            raise PackageFormatError(f"LOD {level_id} declares non-positive resolution {resolution}")
        lods.append(
            LevelOfDetail(
                level_id=level_id,
                resolution=resolution,
                zoom_level=resolve_zoom(resolution, tile_size),
            )
        )
    if not lods:
        raise PackageFormatError(f"{CONF_XML.name} does not declare any LODInfo entries")
    return lods


def _read_item_info(item_info: ET.Element) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for name in ("title", "summary", "description", "accessinformation", "licenseinfo"):
        fields[name] = _text(_find(item_info, name))
    fields["tags"] = _read_tags(_find(item_info, "tags"))
    missing = [name for name in REQUIRED_ITEM_FIELDS if not fields[name]]
    if missing:
        LOGGER.warning("item info is missing required fields", extra={"fields": missing})
    return fields


def _read_tags(element: Optional[ET.Element]) -> str:
    if element is None:
        return ""
    children = [_text(child) for child in element if _text(child)]
    if children:
        return ", ".join(children)
    return _text(element)


def _read_bounds(service: Dict[str, Any]) -> Tuple[float, ...]:
    resource_info = service.get("resourceInfo")
    extent = resource_info.get("geoFullExtent") if isinstance(resource_info, dict) else None
    if not isinstance(extent, dict):
        raise PackageFormatError("service description is missing resourceInfo.geoFullExtent")
    bounds = []
    for key in EXTENT_KEYS:
        if key not in extent:
            raise PackageFormatError(f"geoFullExtent is missing {key}")
        try:
            bounds.append(float(extent[key]))
        except (TypeError, ValueError) as exc:
            raise PackageFormatError(f"geoFullExtent.{key} must be numeric") from exc
    return tuple(bounds)


def _read_legend(service: Dict[str, Any]) -> Tuple[LegendLayer, ...]:
    resources: Dict[str, Any] = {}
    for entry in _as_list(service.get("resources"), "service resources"):
        if isinstance(entry, dict) and "name" in entry:
            resources[entry["name"]] = entry.get("contents") or entry.get("resources")

    legend = resources.get("legend")
    if not isinstance(legend, dict):
        return ()

    layers = []
    for layer in _as_list(legend.get("layers"), "legend layers"):
        if not isinstance(layer, dict):
            raise PackageFormatError(f"legend layer must be an object, got {type(layer).__name__}")
        elements = []
        for item in _as_list(layer.get("legend"), "legend entries"):
            if not isinstance(item, dict):
                raise PackageFormatError(f"legend entry must be an object, got {type(item).__name__}")
            elements.append(
                LegendElement(
                    image_data=f"data:{item.get('contentType', '')};base64,{item.get('imageData', '')}",
                    label=_legend_label(item),
                )
            )
        layers.append(LegendLayer(name=str(layer.get("layerName", "")), elements=tuple(elements)))
    return tuple(layers)


def _as_list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise PackageFormatError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _legend_label(item: Dict[str, Any]) -> Optional[str]:
    label = item.get("label")
    if label:
        return str(label)
    values = item.get("values")
    if isinstance(values, list) and values:
        return ", ".join(str(value) for value in values)
    return None
