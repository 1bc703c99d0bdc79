"""Two-stage extraction over DocumentRecords.

Stage one sends the record's primary page image to the text-recognition
service; stage two feeds the recognized text to the field extractor. The
record's confidence is the mean of both stages, or the text confidence alone
when field extraction failed. A record whose text cannot be recognized is
marked ``extraction_failed`` and keeps any earlier fields.

Batches run in groups of ``concurrency_limit`` records: records inside a
group run concurrently, groups run one after another.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace

from app.config.settings import Settings
from app.extraction.base import BaseFieldExtractor
from app.extraction.exceptions import ExtractionError
from app.extraction.factory import FieldExtractorFactory, TextRecognizerFactory
from app.extraction.models import BatchReport, ExtractionOutcome, TextRecognitionResult
from app.extraction.text_recognition import BaseTextRecognizer
from app.logging.logger import Log
from app.pipeline.exceptions import InvalidArgumentError, PipelineError
from app.records.models import DocumentRecord, ExtractedFields, ProcessingState
from app.resources.tracker import ResourceTracker
from app.thumbnails.cache import ThumbnailCache
from app.thumbnails.generator import ThumbnailGenerator

ProgressCallback = Callable[[int, int], None]


class ExtractionPipeline:
    """Runs text recognition and field extraction for records."""

    def __init__(
        self,
        *,
        recognizer: BaseTextRecognizer,
        field_extractor: BaseFieldExtractor,
        tracker: ResourceTracker,
        thumbnails: ThumbnailGenerator,
        thumbnail_cache: ThumbnailCache,
        language: str = "ja",
        batch_size: int = 3,
    ) -> None:
        self._recognizer = recognizer
        self._field_extractor = field_extractor
        self._tracker = tracker
        self._thumbnails = thumbnails
        self._thumbnail_cache = thumbnail_cache
        self._language = language
        self._batch_size = batch_size

    async def extract_text(self, image_bytes: bytes) -> TextRecognitionResult:
        """Recognize text on one page image.

        Raises:
            ServiceError: if the recognition service fails. Not retried.
        """
        return await self._recognizer.recognize(image_bytes, self._language)

    async def extract_fields(self, raw_text: str) -> ExtractedFields:
        """Best-effort structured extraction; never raises for service failures."""
        try:
            return await self._field_extractor.extract(raw_text)
        except (ExtractionError, ArithmeticError, ValueError) as exc:
            Log.error(f"Field extraction failed: {exc}")
            return ExtractedFields(raw_text=raw_text, confidence=0.5, failed=True)

    async def process_one(self, record: DocumentRecord) -> ExtractionOutcome:
        """Run both stages for *record* and return its outcome."""
        image_handle = record.primary_image
        if image_handle is None:
            return self._failed(record, "Record has no page images")

        try:
            image_bytes = self._tracker.read(image_handle)
            text = await self.extract_text(image_bytes)
        except PipelineError as exc:
            return self._failed(record, str(exc))

        fields = await self.extract_fields(text.text)
        combined = combine(text, fields)
        updated = replace(
            record,
            extracted_fields=combined,
            processing_state=ProcessingState.EXTRACTED,
        )
        if updated.thumbnail is None:
            updated = self._ensure_thumbnail(updated, image_bytes)

        Log.info(
            "Record extracted",
            record_id=record.id,
            confidence=f"{combined.confidence:.3f}",
        )
        return ExtractionOutcome(record=updated, fields=combined)

    async def process_batch(
        self,
        records: list[DocumentRecord],
        concurrency_limit: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchReport:
        """Process *records* in bounded groups; never raises for one record's failure.

        Raises:
            InvalidArgumentError: if *concurrency_limit* is below 1 or record
                ids repeat.
        """
        limit = self._batch_size if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise InvalidArgumentError(f"concurrency_limit must be at least 1, got {limit}")
        ids = [record.id for record in records]
        if len(set(ids)) != len(ids):
            raise InvalidArgumentError("Batch contains duplicate record ids")

        report = BatchReport(total=len(records))
        Log.info(f"Extracting {len(records)} records", concurrency_limit=limit)

        for start in range(0, len(records), limit):
            group = records[start : start + limit]
            results = await asyncio.gather(
                *(self.process_one(record) for record in group),
                return_exceptions=True,
            )
            for record, result in zip(group, results):
                if isinstance(result, BaseException):
                    Log.error(
                        f"Unexpected extraction failure: {result!r}",
                        record_id=record.id,
                    )
                    result = self._failed(record, str(result) or type(result).__name__)
                report.outcomes[record.id] = result
            report.processed += len(group)
            if on_progress is not None:
                on_progress(report.processed, report.total)

        Log.info(f"Extraction finished: {report.summary()}")
        return report

    def _failed(self, record: DocumentRecord, reason: str) -> ExtractionOutcome:
        Log.error(f"Extraction failed: {reason}", record_id=record.id)
        updated = replace(record, processing_state=ProcessingState.EXTRACTION_FAILED)
        return ExtractionOutcome(record=updated, error=reason)

    def _ensure_thumbnail(self, record: DocumentRecord, image_bytes: bytes) -> DocumentRecord:
        """Reuse the session's cached thumbnail, or draw one from the page image."""
        cached = self._thumbnail_cache.get(record.id)
        try:
            if cached is not None:
                handle = self._tracker.create(cached, "image/jpeg")
            else:
                thumbnail = self._thumbnails.generate(image_bytes)
                handle = self._tracker.create(thumbnail.data, thumbnail.mime_type)
                self._thumbnail_cache.cache(record.id, thumbnail)
        except PipelineError as exc:
            Log.warning(f"Could not add missing thumbnail: {exc}", record_id=record.id)
            return record
        return replace(record, thumbnail=handle)


def combine(text: TextRecognitionResult, fields: ExtractedFields) -> ExtractedFields:
    """Merge both stages; a failed field extraction leaves a text-only result."""
    if fields.failed:
        return ExtractedFields(raw_text=text.text, confidence=text.confidence, failed=True)
    return replace(
        fields,
        raw_text=text.text,
        confidence=(text.confidence + fields.confidence) / 2,
    )


def build_pipeline(
    settings: Settings,
    *,
    tracker: ResourceTracker,
    thumbnails: ThumbnailGenerator,
    thumbnail_cache: ThumbnailCache,
) -> ExtractionPipeline:
    return ExtractionPipeline(
        recognizer=TextRecognizerFactory.create(settings),
        field_extractor=FieldExtractorFactory.create(settings),
        tracker=tracker,
        thumbnails=thumbnails,
        thumbnail_cache=thumbnail_cache,
        language=settings.ocr_language_hint,
        batch_size=settings.extraction_batch_size,
    )
