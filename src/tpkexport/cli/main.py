"""CLI entry point for tpkexport."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterable

from tpkexport.config import ExportConfig, load_config
from tpkexport.core.errors import TpkExportError
from tpkexport.core.models import ExportSummary, TilePackage
from tpkexport.export import TileExporter, write_summary
from tpkexport.logging import DEFAULT_LOG_LEVEL, configure_logging, get_logger
from tpkexport.package import PackageReader

LOGGER = get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export ArcGIS tile packages to zoom/column/row tile trees")
    parser.add_argument("--log-json", action="store_true", default=None, help="Emit logs in JSON format")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    subcommands = parser.add_subparsers(dest="command", required=True)

    export = subcommands.add_parser("export", help="Write the package tiles to a {z}/{x}/{y} directory tree")
    export.add_argument("package", help="Path to the .tpk tile package")
    export.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to export configuration file (YAML or JSON)",
    )
    export.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output tile directory; its previous contents are replaced (default: tiles)",
    )
    export.add_argument(
        "--zoom",
        dest="zoom_levels",
        type=int,
        action="append",
        default=None,
        help="Zoom level to export; repeat for several (default: every zoom in the package)",
    )
    export.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of bundles exported concurrently (default: 4)",
    )
    export.add_argument(
        "--staging-dir",
        type=Path,
        default=None,
        help="Parent directory for the temporary extraction (default: system temp)",
    )
    export.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Write the export summary as JSON to this path",
    )
    export.add_argument(
        "--no-metadata",
        action="store_true",
        help="Do not write metadata.json into the output directory",
    )

    info = subcommands.add_parser("info", help="Print tile package metadata as JSON")
    info.add_argument("package", help="Path to the .tpk tile package")
    info.add_argument(
        "--staging-dir",
        type=Path,
        default=None,
        help="Parent directory for the temporary extraction (default: system temp)",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        config = _resolve_config(args)
    except (OSError, ValueError) as exc:
        configure_logging(
            level=args.log_level or DEFAULT_LOG_LEVEL,
            json_logs=bool(args.log_json),
            log_file=args.log_file,
        )
        LOGGER.error("Unable to load configuration: %s", exc)
        return EXIT_FATAL

    configure_logging(
        level=args.log_level or config.log_level,
        json_logs=config.json_logs if args.log_json is None else args.log_json,
        log_file=args.log_file,
    )

    if args.command == "export":
        return _handle_export(args, config)
    if args.command == "info":
        return _handle_info(args)
    parser.error("Unknown command")
    return EXIT_FATAL


def _resolve_config(args: argparse.Namespace) -> ExportConfig:
    config_path = getattr(args, "config", None)
    if config_path is None:
        return ExportConfig()
    resolved = config_path.resolve()
    if not resolved.exists():
        raise ValueError(f"Configuration file not found: {resolved}")
    return load_config(resolved)


def _handle_export(args: argparse.Namespace, config: ExportConfig) -> int:
    output_dir = (args.out or config.output_dir).resolve()
    staging_dir = args.staging_dir or config.staging_dir
    max_workers = args.workers if args.workers is not None else config.max_workers
    zoom_levels = args.zoom_levels or config.zoom_levels or None
    write_metadata = config.write_metadata and not args.no_metadata

    try:
        reader = PackageReader(args.package, staging_parent=staging_dir)
        with reader.open() as package:
            exporter = TileExporter(
                package,
                output_dir=output_dir,
                max_workers=max_workers,
                write_metadata=write_metadata,
            )
            summary = exporter.export_zoom_levels(zoom_levels)
    except KeyboardInterrupt:
        LOGGER.warning("export cancelled; partial output left in %s", output_dir)
        return EXIT_CANCELLED
    except TpkExportError as exc:
        LOGGER.error("export failed: %s", exc)
        return EXIT_FATAL
    except ValueError as exc:
        LOGGER.error("invalid export options: %s", exc)
        return EXIT_FATAL

    _report_summary(summary)
    if args.summary is not None:
        write_summary(summary, args.summary)
    if summary.cancelled:
        return EXIT_CANCELLED
    return EXIT_OK if summary.succeeded else EXIT_PARTIAL


def _report_summary(summary: ExportSummary) -> None:
    LOGGER.info(
        "export summary",
        extra={
            "zoom_levels": list(summary.zoom_levels),
            "bundles_found": summary.bundles_found,
            "bundles_exported": summary.bundles_exported,
            "bundles_cancelled": summary.bundles_cancelled,
            "tiles_written": summary.tiles_written,
            "tiles_empty": summary.tiles_empty,
        },
    )
    for skipped in summary.skipped_bundles:
        LOGGER.warning("skipped bundle %s: %s", skipped.path, skipped.reason)
    for failure in summary.failed_tiles[:10]:
        LOGGER.warning("failed tile %s: %s", failure.address, failure.reason)
    if len(summary.failed_tiles) > 10:
        LOGGER.warning("... and %d more failed tiles", len(summary.failed_tiles) - 10)


def _handle_info(args: argparse.Namespace) -> int:
    try:
        reader = PackageReader(args.package, staging_parent=args.staging_dir)
        with reader.open() as package:
            payload = package_info(package)
    except TpkExportError as exc:
        LOGGER.error("unable to read package: %s", exc)
        return EXIT_FATAL
    print(json.dumps(payload, indent=2))
    return EXIT_OK


def package_info(package: TilePackage) -> Dict[str, Any]:
    return {
        "name": package.name,
        "summary": package.summary,
        "tags": package.tags,
        "description": package.description,
        "credits": package.credits,
        "use_constraints": package.use_constraints,
        "format": package.format,
        "tile_size": package.tile_size,
        "bounds": list(package.bounds),
        "lods": [
            {"level_id": lod.level_id, "resolution": lod.resolution, "zoom": zoom}
            for lod, zoom in zip(package.lods, package.zoom_levels)
        ],
        "legend": [layer.name for layer in package.legend],
    }


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
