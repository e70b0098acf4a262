"""Compact cache bundle discovery and decoding."""

from .base import BundleDecoder, DecoderFactory
from .compact import CompactBundleReader, open_bundle
from .locator import BundleDiscovery, BundleLocator, find_bundle_paths, parse_bundle_address

__all__ = [
    "BundleDecoder",
    "BundleDiscovery",
    "BundleLocator",
    "CompactBundleReader",
    "DecoderFactory",
    "find_bundle_paths",
    "open_bundle",
    "parse_bundle_address",
]
