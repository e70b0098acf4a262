"""Configuration loading utilities for tpkexport."""

from .loader import ConfigLoader, ExportConfig, load_config

__all__ = ["ConfigLoader", "ExportConfig", "load_config"]
