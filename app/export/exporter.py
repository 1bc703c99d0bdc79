"""Hands reviewed records to the persistence backend."""

from dataclasses import dataclass, field

import psycopg

from app.database.models import ReceiptRow
from app.export.base import BaseReceiptPersistence
from app.export.exceptions import ExportError
from app.logging.logger import Log
from app.pipeline.exceptions import ResourceError
from app.records.models import DocumentRecord
from app.resources.tracker import ResourceTracker

MEMO_PREFIX = "OCR結果: "
MEMO_TEXT_LIMIT = 200


@dataclass(frozen=True)
class ExportResult:
    record_id: str
    pdf_path: str
    thumbnail_path: str | None
    pdf_url: str
    row: ReceiptRow


@dataclass
class ExportReport:
    results: list[ExportResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    def summary(self) -> str:
        return f"{len(self.results)} exported, {len(self.failures)} failed"


def summarize_memo(text: str | None) -> str | None:
    """Memo line for a receipt: the OCR text cut to 200 characters."""
    if not text:
        return None
    summary = text[:MEMO_TEXT_LIMIT] + ("..." if len(text) > MEMO_TEXT_LIMIT else "")
    return f"{MEMO_PREFIX}{summary}"


class ReceiptExporter:
    """Stores a record's files and upserts its receipt row."""

    def __init__(
        self,
        persistence: BaseReceiptPersistence,
        tracker: ResourceTracker,
        *,
        signed_url_ttl_seconds: int = 60 * 60 * 24 * 7,
    ) -> None:
        self._persistence = persistence
        self._tracker = tracker
        self._ttl = signed_url_ttl_seconds

    def export(self, record: DocumentRecord) -> ExportResult:
        """Export one record.

        Raises:
            ExportError: if a file or the row cannot be written, or the
                record's handles are no longer live.
        """
        try:
            pdf_path = self._persistence.store(
                record.id,
                "receipt.pdf",
                self._tracker.read(record.source_document),
                "application/pdf",
            )
            thumbnail_path = None
            if record.thumbnail is not None:
                thumbnail_path = self._persistence.store(
                    record.id,
                    "thumbnail.jpg",
                    self._tracker.read(record.thumbnail),
                    self._tracker.content_type(record.thumbnail),
                )
            row = self._persistence.upsert_record(
                build_row(record, pdf_path=pdf_path, thumbnail_path=thumbnail_path)
            )
            pdf_url = self._persistence.retrieve_signed_url(pdf_path, self._ttl)
        except ResourceError as exc:
            raise ExportError(f"Record {record.id} has released resources: {exc}") from exc
        except psycopg.Error as exc:
            raise ExportError(f"Database error exporting record {record.id}: {exc}") from exc

        Log.info("Record exported", record_id=record.id, pdf_path=pdf_path)
        return ExportResult(
            record_id=record.id,
            pdf_path=pdf_path,
            thumbnail_path=thumbnail_path,
            pdf_url=pdf_url,
            row=row,
        )

    def export_many(self, records: list[DocumentRecord]) -> ExportReport:
        report = ExportReport()
        for record in records:
            try:
                report.results.append(self.export(record))
            except ExportError as exc:
                Log.error(f"Export failed: {exc}", record_id=record.id)
                report.failures[record.id] = str(exc)
        Log.info(f"Export finished: {report.summary()}")
        return report


def build_row(
    record: DocumentRecord,
    *,
    pdf_path: str | None = None,
    thumbnail_path: str | None = None,
) -> ReceiptRow:
    fields = record.extracted_fields
    if fields is None:
        return ReceiptRow(id=record.id, pdf_path=pdf_path, thumbnail_path=thumbnail_path)
    return ReceiptRow(
        id=record.id,
        vendor=fields.vendor,
        date=fields.date,
        amount=fields.amount,
        tax_id=fields.tax_id,
        memo=summarize_memo(fields.raw_text),
        pdf_path=pdf_path,
        thumbnail_path=thumbnail_path,
        confidence=fields.confidence,
    )
