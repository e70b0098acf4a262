import struct
from pathlib import Path

import pytest

from conftest import write_v1_bundle
from tpkexport.bundles.compact import CompactBundleReader
from tpkexport.core.errors import TileIOError


def test_v1_reads_tiles_by_global_address(tmp_path: Path) -> None:
    bundle = tmp_path / "L03" / "R0080C0100.bundle"
    write_v1_bundle(bundle, {(0, 0): b"first", (2, 5): b"second"})

    with CompactBundleReader(bundle, row_offset=128, column_offset=256) as reader:
        assert reader.version == 1
        assert reader.get_tile(256, 128, 9) == b"first"
        assert reader.get_tile(258, 133, 9) == b"second"
        assert reader.get_tile(257, 128, 9) == b""


def test_v1_rejects_addresses_outside_bundle(tmp_path: Path) -> None:
    bundle = tmp_path / "R0000C0000.bundle"
    write_v1_bundle(bundle, {})

    with CompactBundleReader(bundle, row_offset=0, column_offset=0) as reader:
        with pytest.raises(TileIOError):
            reader.get_tile(128, 0, 8)
        with pytest.raises(TileIOError):
            reader.get_tile(0, -1, 8)


def test_v1_truncated_bundle(tmp_path: Path) -> None:
    bundle = tmp_path / "R0000C0000.bundle"
    write_v1_bundle(bundle, {(0, 0): b"payload"})
    bundle.write_bytes(bundle.read_bytes()[:-3])

    with CompactBundleReader(bundle, row_offset=0, column_offset=0) as reader:
        with pytest.raises(TileIOError):
            reader.get_tile(0, 0, 1)


def test_v2_reads_self_indexed_bundle(tmp_path: Path) -> None:
    bundle = tmp_path / "R0000C0000.bundle"
    header = bytearray(64)
    index = bytearray(8 * 128 * 128)
    data = b"v2-tile"
    data_offset = len(header) + len(index) + 4
    slot = 3 * 128 + 1  # row 3, column 1
    struct.pack_into("<Q", index, slot * 8, (len(data) << 40) | data_offset)
    bundle.write_bytes(bytes(header) + bytes(index) + struct.pack("<I", len(data)) + data)

    with CompactBundleReader(bundle, row_offset=0, column_offset=0) as reader:
        assert reader.version == 2
        assert reader.get_tile(1, 3, 2) == data
        assert reader.get_tile(3, 1, 2) == b""


def test_missing_bundle_raises(tmp_path: Path) -> None:
    with pytest.raises(TileIOError):
        CompactBundleReader(tmp_path / "R0000C0000.bundle", row_offset=0, column_offset=0)
