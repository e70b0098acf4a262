"""Export compact cache bundles into a ``{zoom}/{column}/{row}`` tile tree."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from tpkexport.bundles.base import DecoderFactory
from tpkexport.bundles.compact import open_bundle
from tpkexport.bundles.locator import BundleLocator
from tpkexport.core.errors import TileIOError, UnsupportedFormatError
from tpkexport.core.models import (
    BundleFile,
    BundleReport,
    ExportSummary,
    SkippedBundle,
    TileAddress,
    TileFailure,
    TilePackage,
)
from tpkexport.logging import get_logger
from tpkexport.tiling.zoom import BUNDLE_DIM

from .metadata import METADATA_FILENAME, build_metadata, write_metadata
from .writer import TileStoreWriter, tile_extension

LOGGER = get_logger(__name__)

DEFAULT_MAX_WORKERS = 4


class TileExporter:
    """Drive bundle decoders over every slot and write the resulting tiles."""

    def __init__(
        self,
        package: TilePackage,
        *,
        output_dir: Path,
        max_workers: int = DEFAULT_MAX_WORKERS,
        decoder_factory: DecoderFactory = open_bundle,
        writer: Optional[TileStoreWriter] = None,
        write_metadata: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._package = package
        self._writer = writer or TileStoreWriter(output_dir)
        self._max_workers = max_workers
        self._decoder_factory = decoder_factory
        self._write_metadata = write_metadata
        self._cancel_event = cancel_event or threading.Event()
        self._extension = tile_extension(package.format)

    @property
    def output_dir(self) -> Path:
        return self._writer.root

    def cancel(self) -> None:
        """Ask running bundle workers to stop after their current tile."""

        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def export_zoom_levels(self, zoom_levels: Optional[Iterable[int]] = None) -> ExportSummary:
        """Export every bundle whose zoom level is in ``zoom_levels`` (default: all)."""

        if self._package.is_mixed:
            raise UnsupportedFormatError("Mixed format tiles are not supported for export to disk")
        if self._package.staging_dir is None:
            raise ValueError("package has no staging directory; open it with PackageReader.open()")

        requested = _normalize_zooms(self._package.zoom_levels if zoom_levels is None else zoom_levels)
        summary = ExportSummary(zoom_levels=requested)

        self._writer.reset()

        locator = BundleLocator(self._package.lod_zooms)
        discovery = locator.discover_bundles(self._package.staging_dir)
        summary.skipped_bundles.extend(discovery.skipped)
        bundles = locator.select(discovery.bundles, requested)
        summary.bundles_found = len(bundles)

        LOGGER.info(
            "exporting tiles",
            extra={
                "output_dir": str(self.output_dir),
                "zoom_levels": list(requested),
                "bundles": len(bundles),
                "workers": self._max_workers,
            },
        )
        start = time.perf_counter()
        for report in self._run(bundles):
            summary.merge(report)
        summary.cancelled = self.cancelled

        if self._write_metadata and not summary.cancelled:
            write_metadata(self.output_dir / METADATA_FILENAME, build_metadata(self._package, requested))

        duration = time.perf_counter() - start
        if summary.tiles_written == 0:
            LOGGER.warning("no tiles were exported", extra={"zoom_levels": list(requested)})
        LOGGER.info(
            "export finished",
            extra={
                "duration_s": f"{duration:.2f}",
                "tiles_written": summary.tiles_written,
                "skipped_bundles": len(summary.skipped_bundles),
                "failed_tiles": len(summary.failed_tiles),
                "bundles_cancelled": summary.bundles_cancelled,
                "cancelled": summary.cancelled,
            },
        )
        return summary

    def _run(self, bundles: List[BundleFile]) -> List[BundleReport]:
        reports: List[BundleReport] = []
        if not bundles:
            return reports
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="bundle") as executor:
            futures = {executor.submit(self.export_bundle, bundle): bundle for bundle in bundles}
            try:
                for future in as_completed(futures):
                    bundle = futures[future]
                    try:
                        reports.append(future.result())
                    except Exception as exc:
                        LOGGER.error(
                            "bundle export crashed",
                            extra={"path": str(bundle.path), "reason": _describe(exc)},
                            exc_info=True,
                        )
                        skipped = SkippedBundle(path=bundle.path, reason=_describe(exc))
                        reports.append(BundleReport(bundle=bundle, skipped=skipped))
            except KeyboardInterrupt:
                LOGGER.warning("export interrupted; waiting for bundle workers to stop")
                self.cancel()
                raise
        return reports

    def export_bundle(self, bundle: BundleFile) -> BundleReport:
        """Export every populated, in-range slot of one bundle."""

        report = BundleReport(bundle=bundle)
        if bundle.zoom_level is None:
            report.skipped = SkippedBundle(path=bundle.path, reason=f"LOD {bundle.lod_id} is not in the ladder")
            return report
        if self.cancelled:
            report.cancelled = True
            return report
        zoom = bundle.zoom_level

        try:
            decoder = self._decoder_factory(bundle)
        except Exception as exc:
            LOGGER.warning("skipping unreadable bundle", extra={"path": str(bundle.path), "reason": _describe(exc)})
            report.skipped = SkippedBundle(path=bundle.path, reason=_describe(exc))
            return report

        try:
            for address in iter_bundle_slots(bundle):
                if not address.in_range:
                    report.tiles_out_of_range += 1
                    continue
                if self.cancelled:
                    report.cancelled = True
                    break
                try:
                    data = decoder.get_tile(address.column, address.row, zoom)
                    if not data:
                        report.tiles_empty += 1
                        continue
                    self._writer.write_tile(zoom, address.column, address.row, self._extension, data)
                    report.tiles_written += 1
                except Exception as exc:
                    LOGGER.warning("tile export failed", extra={"tile": str(address), "reason": _describe(exc)})
                    report.failures.append(TileFailure(address=address, bundle=bundle.path, reason=_describe(exc)))
        finally:
            try:
                decoder.close()
            except Exception as exc:
                LOGGER.warning("unable to close bundle", extra={"path": str(bundle.path), "reason": _describe(exc)})

        LOGGER.debug(
            "bundle exported",
            extra={
                "path": str(bundle.path),
                "zoom": zoom,
                "tiles_written": report.tiles_written,
                "cancelled": report.cancelled,
            },
        )
        return report


def iter_bundle_slots(bundle: BundleFile) -> Iterable[TileAddress]:
    """Yield the global address of every slot in column-major order."""

    zoom = bundle.zoom_level if bundle.zoom_level is not None else 0
    for index in range(BUNDLE_DIM * BUNDLE_DIM):
        local_column, local_row = divmod(index, BUNDLE_DIM)
        yield TileAddress(
            zoom=zoom,
            column=bundle.column_offset + local_column,
            row=bundle.row_offset + local_row,
        )


def _normalize_zooms(zoom_levels: Iterable[int]) -> Tuple[int, ...]:
    return tuple(sorted({int(zoom) for zoom in zoom_levels}))


def _describe(exc: BaseException) -> str:
    if isinstance(exc, (TileIOError, OSError)):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"
