"""One user session: ingest, extract, review, export.

Every collaborator is created once here and shared, so all handles belong to
the session's tracker and closing the session releases them all.
"""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from app.config.settings import Settings
from app.documents.converter import DocumentConverter, build_converter
from app.export.exceptions import ExportError
from app.export.base import BaseReceiptPersistence
from app.export.exporter import ExportReport, ReceiptExporter
from app.extraction.models import BatchReport
from app.extraction.pipeline import ExtractionPipeline, ProgressCallback, build_pipeline
from app.ingestion.orchestrator import IngestionOrchestrator, IngestReport
from app.logging.logger import Log
from app.records.models import DocumentRecord, IngestMode, InputFile, ProcessingState
from app.resources.tracker import ResourceTracker
from app.session.cache import SessionCache
from app.session.store import ReceiptStore, RecordSnapshot
from app.thumbnails.cache import ThumbnailCache
from app.thumbnails.generator import ThumbnailGenerator

RECORDS_CACHE_KEY = "receipts"

PipelineFactory = Callable[
    [ResourceTracker, ThumbnailGenerator, ThumbnailCache], ExtractionPipeline
]


class ReceiptSession:
    """Facade over the store, ingestion, extraction and export of one session."""

    def __init__(
        self,
        *,
        tracker: ResourceTracker,
        cache: SessionCache,
        converter: DocumentConverter,
        thumbnails: ThumbnailGenerator,
        pipeline_factory: PipelineFactory,
        persistence: BaseReceiptPersistence | None = None,
        signed_url_ttl_seconds: int = 60 * 60 * 24 * 7,
    ) -> None:
        self.tracker = tracker
        self.cache = cache
        self.thumbnail_cache = ThumbnailCache(cache)
        self.store = ReceiptStore(
            tracker=tracker,
            thumbnail_cache=self.thumbnail_cache,
            converter=converter,
            thumbnails=thumbnails,
        )
        self._orchestrator = IngestionOrchestrator(
            converter, thumbnails, tracker, self.thumbnail_cache
        )
        self._pipeline = pipeline_factory(tracker, thumbnails, self.thumbnail_cache)
        self._exporter = (
            ReceiptExporter(persistence, tracker, signed_url_ttl_seconds=signed_url_ttl_seconds)
            if persistence is not None
            else None
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        persistence: BaseReceiptPersistence | None = None,
    ) -> "ReceiptSession":
        cache = SessionCache()
        if settings.session_cache_path:
            cache = SessionCache.load(Path(settings.session_cache_path))
        return cls(
            tracker=ResourceTracker(),
            cache=cache,
            converter=build_converter(settings),
            thumbnails=ThumbnailGenerator(
                max_width=settings.thumbnail_max_width,
                max_height=settings.thumbnail_max_height,
                quality=settings.thumbnail_jpeg_quality,
            ),
            pipeline_factory=lambda tracker, thumbnails, thumbnail_cache: build_pipeline(
                settings,
                tracker=tracker,
                thumbnails=thumbnails,
                thumbnail_cache=thumbnail_cache,
            ),
            persistence=persistence,
            signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
        )

    def __enter__(self) -> "ReceiptSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def records(self) -> list[DocumentRecord]:
        return self.store.records()

    def ingest(
        self,
        files: list[InputFile],
        mode: IngestMode | str = IngestMode.MERGE,
        on_progress: ProgressCallback | None = None,
    ) -> IngestReport:
        report = self._orchestrator.ingest(files, mode, on_progress)
        self.store.add_many(report.records)
        return report

    async def extract_pending(
        self,
        on_progress: ProgressCallback | None = None,
        concurrency_limit: int | None = None,
    ) -> BatchReport:
        """Extract every record that is not yet extracted and fold results back."""
        pending = [
            record
            for record in self.store.records()
            if record.processing_state is not ProcessingState.EXTRACTED
        ]
        report = await self._pipeline.process_batch(
            pending,
            concurrency_limit=concurrency_limit,
            on_progress=on_progress,
        )
        self.store.apply_outcomes(report.outcomes.values())
        return report

    def run_extraction(
        self,
        on_progress: ProgressCallback | None = None,
        concurrency_limit: int | None = None,
    ) -> BatchReport:
        return asyncio.run(self.extract_pending(on_progress, concurrency_limit))

    def merge(self, record_ids: list[str]) -> DocumentRecord:
        return self.store.merge(record_ids)

    def split(self, record_id: str) -> list[DocumentRecord]:
        return self.store.split(record_id)

    def remove(self, record_id: str) -> None:
        self.store.remove(record_id)

    def export_confirmed(self, record_ids: list[str] | None = None) -> ExportReport:
        """Export the given records, or every extracted record.

        Raises:
            ExportError: if the session has no exporter.
        """
        if self._exporter is None:
            raise ExportError("No exporter configured for this session")
        if record_ids is None:
            records = [
                record
                for record in self.store.records()
                if record.processing_state is ProcessingState.EXTRACTED
            ]
        else:
            records = [self.store.get(record_id) for record_id in record_ids]
        return self._exporter.export_many(records)

    def save(self, path: Path) -> None:
        """Write thumbnails and record metadata to *path*."""
        self.cache.set(RECORDS_CACHE_KEY, json.dumps(self.store.snapshot(), ensure_ascii=False))
        self.cache.dump(path)

    def saved_records(self) -> list[RecordSnapshot]:
        """Record metadata from a previously saved session, if any."""
        raw = self.cache.get(RECORDS_CACHE_KEY)
        if raw is None:
            return []
        return ReceiptStore.restore(json.loads(raw))

    def close(self) -> None:
        count = len(self.store)
        self.store.clear()
        Log.debug(f"Session closed, {count} records released")

