import json
import struct
import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

import pytest

BUNDLE_DIM = 128
V1_BUNDLE_HEADER = 60

WEB_MERCATOR_LODS = (
    (0, 156543.03392804097),
    (1, 78271.51696402048),
    (2, 39135.75848201024),
)

Slots = Dict[Tuple[int, int], bytes]


def write_v1_bundle(bundle_path: Path, tiles: Slots) -> None:
    """Write a V1 compact bundle/bundlx pair; ``tiles`` is keyed by (local_column, local_row)."""

    bundle_path.parent.mkdir(parents=True, exist_ok=True)
    body = bytearray(V1_BUNDLE_HEADER)
    empty_offset = len(body)
    body += struct.pack("<I", 0)
    offsets = []
    for index in range(BUNDLE_DIM * BUNDLE_DIM):
        local_column, local_row = divmod(index, BUNDLE_DIM)
        data = tiles.get((local_column, local_row))
        if not data:
            offsets.append(empty_offset)
            continue
        offsets.append(len(body))
        body += struct.pack("<I", len(data)) + data
    bundle_path.write_bytes(bytes(body))

    index_bytes = bytearray(16)
    for offset in offsets:
        index_bytes += offset.to_bytes(5, "little")
    index_bytes += bytes(16)
    bundle_path.with_suffix(".bundlx").write_bytes(bytes(index_bytes))


def conf_xml(tile_format: str, lods: Iterable[Tuple[int, float]], tile_size: int = 256) -> str:
    lod_infos = "".join(
        f"<LODInfo><LevelID>{level}</LevelID><Scale>0</Scale><Resolution>{resolution}</Resolution></LODInfo>"
        for level, resolution in lods
    )
    return (
        "<?xml version='1.0' encoding='utf-8'?>"
        "<CacheInfo xmlns:xsi='http://www.w3.org/2001/XMLSchema-instance' xsi:type='typens:CacheInfo'>"
        f"<TileCacheInfo><TileCols>{tile_size}</TileCols><TileRows>{tile_size}</TileRows>"
        f"<LODInfos>{lod_infos}</LODInfos></TileCacheInfo>"
        f"<TileImageInfo><CacheTileFormat>{tile_format}</CacheTileFormat></TileImageInfo>"
        "<CacheStorageInfo><StorageFormat>esriMapCacheStorageModeCompact</StorageFormat>"
        "<PacketSize>128</PacketSize></CacheStorageInfo>"
        "</CacheInfo>"
    )


def iteminfo_xml(fields: Dict[str, str], tags: Sequence[str]) -> str:
    body = "".join(f"<{key}>{value}</{key}>" for key, value in fields.items())
    tag_xml = "<tags>" + "".join(f"<tag>{tag}</tag>" for tag in tags) + "</tags>" if tags else ""
    return f"<?xml version='1.0' encoding='utf-8'?><ESRI_ItemInformation>{body}{tag_xml}</ESRI_ItemInformation>"


def mapserver_json(with_legend: bool) -> str:
    payload = {
        "resourceInfo": {
            "geoFullExtent": {
                "xmin": -180.0,
                "ymin": -85.0,
                "xmax": 180.0,
                "ymax": 85.0,
                "spatialReference": {"wkid": 4326},
            }
        },
        "resources": [],
    }
    if with_legend:
        payload["resources"].append(
            {
                "name": "legend",
                "contents": {
                    "layers": [
                        {
                            "layerName": "Land cover",
                            "legend": [
                                {"label": "Forest", "contentType": "image/png", "imageData": "AAA="},
                                {"label": "", "values": ["Water", "Ice"], "contentType": "image/png", "imageData": "BBB="},
                                {"label": "", "contentType": "image/png", "imageData": "CCC="},
                            ],
                        }
                    ]
                },
            }
        )
    return json.dumps(payload)


@pytest.fixture()
def make_tpk(tmp_path: Path) -> Callable[..., Path]:
    """Return a builder for synthetic tile packages."""

    def _build(
        name: str = "sample.tpk",
        *,
        tile_format: str = "PNG",
        lods: Iterable[Tuple[int, float]] = WEB_MERCATOR_LODS,
        bundles: Optional[Dict[str, Slots]] = None,
        item_fields: Optional[Dict[str, str]] = None,
        tags: Sequence[str] = ("basemap", "offline"),
        with_legend: bool = True,
        omit: Sequence[str] = (),
        extra_files: Optional[Dict[str, bytes]] = None,
    ) -> Path:
        source = tmp_path / f"{name}_src"
        documents = {
            "v101/Map/conf.xml": conf_xml(tile_format, lods),
            "esriinfo/iteminfo.xml": iteminfo_xml(
                item_fields
                if item_fields is not None
                else {
                    "title": "Sample",
                    "summary": "A sample package",
                    "description": "Long description",
                    "accessinformation": "Example Credits",
                    "licenseinfo": "No restrictions",
                },
                tags,
            ),
            "servicedescriptions/mapserver/mapserver.json": mapserver_json(with_legend),
        }
        for relative, text in documents.items():
            if relative in omit:
                continue
            target = source / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        for relative, slots in (bundles or {}).items():
            write_v1_bundle(source / "v101" / "Layers" / "_alllayers" / relative, slots)
        for relative, data in (extra_files or {}).items():
            target = source / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        archive_path = tmp_path / name
        with zipfile.ZipFile(archive_path, "w") as archive:
            for file_path in sorted(source.rglob("*")):
                if file_path.is_file():
                    archive.write(file_path, file_path.relative_to(source).as_posix())
        return archive_path

    return _build
