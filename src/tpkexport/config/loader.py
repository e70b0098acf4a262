"""Configuration management with YAML and JSON support."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from tpkexport.logging import DEFAULT_LOG_LEVEL


@dataclass
class ExportConfig:
    """Top-level configuration object for tile package exports."""

    output_dir: Path = Path("tiles")
    staging_dir: Optional[Path] = None
    zoom_levels: Tuple[int, ...] = field(default_factory=tuple)
    max_workers: int = 4
    write_metadata: bool = True
    log_level: str = DEFAULT_LOG_LEVEL
    json_logs: bool = False

    def resolve_relative_paths(self, base_dir: Path) -> None:
        """Resolve relative directories against the provided base directory."""

        if not self.output_dir.is_absolute():
            self.output_dir = base_dir / self.output_dir
        if self.staging_dir is not None and not self.staging_dir.is_absolute():
            self.staging_dir = base_dir / self.staging_dir


class ConfigLoader:
    """Load export configuration files in YAML or JSON format."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Path | str) -> ExportConfig:
        """Parse a configuration file and return a populated dataclass."""

        config_path = self._resolve_path(Path(path))
        payload = self._load_payload(config_path)
        config = self._build_config(payload)
        config.resolve_relative_paths(config_path.parent)
        return config

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                try:
                    payload = yaml.safe_load(handle) or {}
                except yaml.YAMLError as exc:
                    raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
        elif suffix == ".json":
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle) or {}
        else:
            raise ValueError(f"Unsupported configuration format: {suffix}")
        if not isinstance(payload, dict):
            raise ValueError("configuration root must be a mapping")
        return payload

    def _build_config(self, payload: Dict[str, Any]) -> ExportConfig:
        unknown = set(payload) - set(ExportConfig.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        data = dict(payload)
        if "output_dir" in data:
            data["output_dir"] = Path(data["output_dir"])
        if data.get("staging_dir") is not None:
            data["staging_dir"] = Path(data["staging_dir"])

        zooms = data.get("zoom_levels")
        if zooms is not None:
            if not isinstance(zooms, (list, tuple)):
                raise ValueError("zoom_levels must be a list of integers")
            data["zoom_levels"] = tuple(_as_zoom(value) for value in zooms)
        else:
            data.pop("zoom_levels", None)

        if "max_workers" in data:
            data["max_workers"] = int(data["max_workers"])
            if data["max_workers"] < 1:
                raise ValueError("max_workers must be at least 1")
        for key in ("write_metadata", "json_logs"):
            if key in data and not isinstance(data[key], bool):
                raise ValueError(f"{key} must be a boolean")
        if "log_level" in data:
            data["log_level"] = str(data["log_level"]).upper()
        return ExportConfig(**data)


def _as_zoom(value: Any) -> int:
    zoom = int(value)
    if zoom < 0:
        raise ValueError(f"zoom levels must be non-negative, got {zoom}")
    return zoom


def load_config(path: Path | str, *, base_dir: Optional[Path] = None) -> ExportConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)
