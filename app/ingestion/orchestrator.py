"""Turns a batch of uploaded files into DocumentRecords.

Files are processed strictly one after another so that at most one decoded
document is held in memory at a time. A file that fails is logged, reported
and skipped; handles created for it are released before moving on.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace

from app.documents.converter import DocumentConverter
from app.logging.logger import Log
from app.pipeline.exceptions import InvalidArgumentError, RenderError, UnsupportedFileTypeError
from app.records.models import (
    DocumentRecord,
    IngestMode,
    InputFile,
    ProcessingState,
    RasterImage,
)
from app.resources.tracker import ResourceTracker
from app.thumbnails.cache import ThumbnailCache
from app.thumbnails.generator import ThumbnailGenerator

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class IngestFailure:
    name: str
    reason: str


@dataclass
class IngestReport:
    records: list[DocumentRecord] = field(default_factory=list)
    failures: list[IngestFailure] = field(default_factory=list)

    def summary(self) -> str:
        return f"{len(self.records)} records created, {len(self.failures)} files failed"


@dataclass
class _Pending:
    """A record built for the current file but not yet committed."""

    record: DocumentRecord
    thumbnail: RasterImage | None


class IngestionOrchestrator:
    """Drives the converter and thumbnail generator over input files."""

    def __init__(
        self,
        converter: DocumentConverter,
        thumbnails: ThumbnailGenerator,
        tracker: ResourceTracker,
        thumbnail_cache: ThumbnailCache,
        *,
        generate_thumbnails: bool = True,
    ) -> None:
        self._converter = converter
        self._thumbnails = thumbnails
        self._tracker = tracker
        self._thumbnail_cache = thumbnail_cache
        self._generate_thumbnails = generate_thumbnails

    def ingest(
        self,
        files: list[InputFile],
        mode: IngestMode | str,
        on_progress: ProgressCallback | None = None,
    ) -> IngestReport:
        """Ingest *files* in order; never raises for a single bad file."""
        try:
            mode = IngestMode(mode)
        except ValueError as exc:
            raise InvalidArgumentError(f"Unknown ingest mode: {mode!r}") from exc

        report = IngestReport()
        Log.info(f"Ingesting {len(files)} files in {mode.value} mode")

        for index, input_file in enumerate(files, start=1):
            Log.info(
                f"Processing file {index}/{len(files)}",
                file=input_file.name,
                content_type=input_file.content_type,
            )
            created: list[str] = []
            try:
                pending = self._ingest_file(input_file, mode, created)
            except InvalidArgumentError:
                self._tracker.release_many(created)
                raise
            except Exception as exc:
                self._tracker.release_many(created)
                Log.error(f"Skipping file: {exc}", file=input_file.name)
                report.failures.append(IngestFailure(name=input_file.name, reason=str(exc)))
            else:
                for item in pending:
                    if item.thumbnail is not None:
                        self._thumbnail_cache.cache(item.record.id, item.thumbnail)
                    report.records.append(item.record)
            if on_progress is not None:
                on_progress(index, len(files))

        Log.info(f"Ingestion finished: {report.summary()}")
        return report

    def _ingest_file(
        self,
        input_file: InputFile,
        mode: IngestMode,
        created: list[str],
    ) -> list[_Pending]:
        if input_file.is_image:
            return [self._ingest_image(input_file, created)]
        if input_file.is_pdf:
            if mode is IngestMode.MERGE:
                return [self._ingest_pdf_merged(input_file, created)]
            return self._ingest_pdf_split(input_file, created)
        raise UnsupportedFileTypeError(
            f"'{input_file.name}' has unsupported type '{input_file.content_type}'"
        )

    def _ingest_image(self, input_file: InputFile, created: list[str]) -> _Pending:
        document = self._converter.embed_image_as_single_page_document(input_file.data)
        page = self._track(input_file.data, input_file.content_type, created)
        return self._build(
            page_images=[page],
            page_bytes=input_file.data,
            document=document,
            source_name=input_file.name,
            created=created,
        )

    def _ingest_pdf_merged(self, input_file: InputFile, created: list[str]) -> _Pending:
        images = self._converter.rasterize_all_pages(input_file.data)
        if not images:
            Log.warning("No pages rasterized, trying first page alone", file=input_file.name)
            images = [self._converter.rasterize_page(input_file.data, 0)]
        pages = [self._track(image.data, image.mime_type, created) for image in images]
        Log.debug(f"Rasterized {len(pages)} pages", file=input_file.name)
        return self._build(
            page_images=pages,
            page_bytes=images[0].data,
            document=input_file.data,
            source_name=input_file.name,
            created=created,
        )

    def _ingest_pdf_split(self, input_file: InputFile, created: list[str]) -> list[_Pending]:
        parts = self._converter.split_into_single_page_documents(input_file.data)
        if not parts:
            raise RenderError(f"No pages of '{input_file.name}' could be rendered")
        Log.debug(f"Split into {len(parts)} pages", file=input_file.name)
        pending: list[_Pending] = []
        for number, (document, image) in enumerate(parts, start=1):
            page = self._track(image.data, image.mime_type, created)
            pending.append(
                self._build(
                    page_images=[page],
                    page_bytes=image.data,
                    document=document,
                    source_name=f"{input_file.name}#page={number}",
                    created=created,
                )
            )
        return pending

    def _build(
        self,
        *,
        page_images: list[str],
        page_bytes: bytes,
        document: bytes,
        source_name: str,
        created: list[str],
    ) -> _Pending:
        record = DocumentRecord.new(
            page_images=page_images,
            source_document=self._track(document, "application/pdf", created),
            source_name=source_name,
        )
        if not self._generate_thumbnails:
            return _Pending(record=record, thumbnail=None)

        thumbnail = self._thumbnails.generate_or_placeholder(page_bytes)
        record = replace(
            record,
            thumbnail=self._track(thumbnail.data, thumbnail.mime_type, created),
            processing_state=ProcessingState.THUMBNAILED,
        )
        return _Pending(record=record, thumbnail=thumbnail)

    def _track(self, data: bytes, content_type: str, created: list[str]) -> str:
        handle = self._tracker.create(data, content_type)
        created.append(handle)
        return handle
