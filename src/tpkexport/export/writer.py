"""Filesystem tile store laid out as ``{zoom}/{column}/{row}.{ext}``."""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from tpkexport.core.errors import TileIOError
from tpkexport.logging import get_logger

LOGGER = get_logger(__name__)


def tile_extension(codec: str) -> str:
    """Return the file extension for a cache tile codec (``PNG8`` -> ``png``)."""

    return re.sub(r"[0-9]", "", codec).strip().lower()


class TileStoreWriter:
    """Create the output hierarchy and write tile bytes into it."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def reset(self) -> None:
        """Destroy any previous output and recreate an empty root directory."""

        if self._root.is_dir() and not self._root.is_symlink():
            LOGGER.info("removing previous tile output", extra={"path": str(self._root)})
            shutil.rmtree(self._root)
        elif self._root.exists() or self._root.is_symlink():
            self._root.unlink()
        self._root.mkdir(parents=True, exist_ok=True)

    def tile_path(self, zoom: int, column: int, row: int, extension: str) -> Path:
        return self._root / str(zoom) / str(column) / f"{row}.{extension}"

    def write_tile(self, zoom: int, column: int, row: int, extension: str, data: bytes) -> Path:
        path = self.tile_path(zoom, column, row, extension)
        try:
            # concurrent bundles may share a zoom/column directory
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise TileIOError(f"Unable to write tile {zoom}/{column}/{row}: {exc}") from exc
        return path
