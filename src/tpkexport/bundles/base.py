"""Protocol definitions for bundle decoding components."""

from __future__ import annotations

from typing import Callable, Protocol

from tpkexport.core.models import BundleFile


class BundleDecoder(Protocol):
    """Interface for reading individual tiles out of one bundle."""

    def get_tile(self, column: int, row: int, zoom: int) -> bytes:
        """Return the tile bytes at a global address; empty when the slot is unpopulated."""

    def close(self) -> None:
        """Release any file handles held by the decoder."""


DecoderFactory = Callable[[BundleFile], BundleDecoder]
