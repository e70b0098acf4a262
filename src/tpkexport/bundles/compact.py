"""Readers for the compact cache bundle storage format.

Two layouts exist:

* V1 keeps the tile index in a sibling ``.bundlx`` file: a 16 byte header
  followed by one 5 byte little-endian offset per tile in column-major order.
  Each offset points at a 4 byte little-endian length followed by the tile.
* V2 stores everything in the ``.bundle``: a 64 byte header followed by one
  8 byte little-endian entry per tile in row-major order, packing the offset
  into the low 40 bits and the length into the high 24 bits.
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import BinaryIO, Optional

from tpkexport.core.errors import TileIOError
from tpkexport.core.models import BundleFile
from tpkexport.tiling.zoom import BUNDLE_DIM

V1_INDEX_HEADER = 16
V1_INDEX_SIZE = 5
V1_LENGTH_SIZE = 4
V2_HEADER = 64
V2_INDEX_SIZE = 8
V2_OFFSET_BITS = 40


class CompactBundleReader:
    """Fetch tiles from one compact cache bundle by global address."""

    def __init__(
        self,
        path: Path,
        *,
        row_offset: int,
        column_offset: int,
        packet_size: int = BUNDLE_DIM,
    ) -> None:
        self._path = path
        self._row_offset = row_offset
        self._column_offset = column_offset
        self._packet_size = packet_size
        self._index_path = path.with_suffix(".bundlx")
        self._bundle: Optional[BinaryIO] = None
        self._index: Optional[BinaryIO] = None
        try:
            self._bundle = path.open("rb")
            if self._index_path.is_file():
                self._index = self._index_path.open("rb")
        except OSError as exc:
            self.close()
            raise TileIOError(f"Unable to open bundle {path}: {exc}") from exc

    @property
    def version(self) -> int:
        return 1 if self._index is not None else 2

    def get_tile(self, column: int, row: int, zoom: int) -> bytes:
        local_column = column - self._column_offset
        local_row = row - self._row_offset
        if not (0 <= local_column < self._packet_size and 0 <= local_row < self._packet_size):
            raise TileIOError(f"Tile {zoom}/{column}/{row} lies outside bundle {self._path.name}")
        try:
            if self._index is not None:
                return self._read_v1(local_column, local_row)
            return self._read_v2(local_column, local_row)
        except (OSError, struct.error) as exc:
            raise TileIOError(f"Unable to read tile {zoom}/{column}/{row} from {self._path.name}: {exc}") from exc

    def _read_v1(self, local_column: int, local_row: int) -> bytes:
        slot = local_column * self._packet_size + local_row
        self._index.seek(V1_INDEX_HEADER + slot * V1_INDEX_SIZE)
        raw_offset = self._read_exact(self._index, V1_INDEX_SIZE)
        offset = int.from_bytes(raw_offset, "little")
        self._bundle.seek(offset)
        (size,) = struct.unpack("<I", self._read_exact(self._bundle, V1_LENGTH_SIZE))
        if size == 0:
            return b""
        return self._read_exact(self._bundle, size)

    def _read_v2(self, local_column: int, local_row: int) -> bytes:
        slot = local_row * self._packet_size + local_column
        self._bundle.seek(V2_HEADER + slot * V2_INDEX_SIZE)
        (entry,) = struct.unpack("<Q", self._read_exact(self._bundle, V2_INDEX_SIZE))
        offset = entry & ((1 << V2_OFFSET_BITS) - 1)
        size = entry >> V2_OFFSET_BITS
        if size == 0:
            return b""
        self._bundle.seek(offset)
        return self._read_exact(self._bundle, size)

    def _read_exact(self, handle: BinaryIO, size: int) -> bytes:
        data = handle.read(size)
        if len(data) != size:
            raise TileIOError(f"Truncated read in {Path(handle.name).name}: wanted {size} bytes, got {len(data)}")
        return data

    def close(self) -> None:
        for handle in (self._index, self._bundle):
            if handle is not None:
                handle.close()
        self._index = None
        self._bundle = None

    def __enter__(self) -> "CompactBundleReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_bundle(bundle: BundleFile) -> CompactBundleReader:
    """Default decoder factory used by the exporter."""

    return CompactBundleReader(
        bundle.path,
        row_offset=bundle.row_offset,
        column_offset=bundle.column_offset,
    )
