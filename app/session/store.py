"""Ordered collection of the session's DocumentRecords.

The store is the single owner of record handles once ingestion has
committed them: replacing, removing, merging or splitting records releases
every handle the surviving records no longer reference.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass, replace
from typing import Any

from app.documents.converter import DocumentConverter
from app.extraction.models import ExtractionOutcome
from app.logging.logger import Log
from app.pipeline.exceptions import InvalidArgumentError, PipelineError, RenderError
from app.records.models import (
    DocumentRecord,
    ExtractedFields,
    LineItem,
    ProcessingState,
)
from app.resources.tracker import ResourceTracker
from app.thumbnails.cache import ThumbnailCache
from app.thumbnails.generator import ThumbnailGenerator


@dataclass(frozen=True)
class RecordSnapshot:
    """Serializable metadata of a record; carries no resource handles."""

    id: str
    source_name: str
    processing_state: ProcessingState
    extracted_fields: ExtractedFields | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_name": self.source_name,
            "processing_state": self.processing_state.value,
            "extracted_fields": (
                asdict(self.extracted_fields) if self.extracted_fields is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordSnapshot":
        raw_fields = data.get("extracted_fields")
        fields = None
        if raw_fields is not None:
            fields = ExtractedFields(
                raw_text=raw_fields.get("raw_text", ""),
                confidence=float(raw_fields.get("confidence", 0.0)),
                vendor=raw_fields.get("vendor"),
                date=raw_fields.get("date"),
                amount=raw_fields.get("amount"),
                tax_id=raw_fields.get("tax_id"),
                line_items=[LineItem(**item) for item in raw_fields.get("line_items") or []],
                failed=bool(raw_fields.get("failed", False)),
            )
        return cls(
            id=data["id"],
            source_name=data.get("source_name", ""),
            processing_state=ProcessingState(data["processing_state"]),
            extracted_fields=fields,
        )


class ReceiptStore:
    """Session state store for records, injected into the session components."""

    def __init__(
        self,
        *,
        tracker: ResourceTracker,
        thumbnail_cache: ThumbnailCache,
        converter: DocumentConverter,
        thumbnails: ThumbnailGenerator,
    ) -> None:
        self._tracker = tracker
        self._thumbnail_cache = thumbnail_cache
        self._converter = converter
        self._thumbnails = thumbnails
        self._records: list[DocumentRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return any(record.id == record_id for record in self._records)

    def records(self) -> list[DocumentRecord]:
        return list(self._records)

    def get(self, record_id: str) -> DocumentRecord:
        return self._records[self._index(record_id)]

    def add_many(self, records: Iterable[DocumentRecord]) -> None:
        """Append *records* in order.

        Raises:
            InvalidArgumentError: if an id is already present or repeats.
        """
        incoming = list(records)
        seen = {record.id for record in self._records}
        for record in incoming:
            if record.id in seen:
                raise InvalidArgumentError(f"Duplicate record id: {record.id}")
            seen.add(record.id)
        self._records.extend(incoming)

    def replace(self, record: DocumentRecord) -> None:
        """Swap in an updated copy of a stored record.

        Handles referenced by the old copy but not by *record* are released.
        """
        index = self._index(record.id)
        previous = self._records[index]
        self._records[index] = record
        kept = set(record.handles())
        self._tracker.release_many([handle for handle in previous.handles() if handle not in kept])

    def remove(self, record_id: str) -> DocumentRecord:
        record = self._records.pop(self._index(record_id))
        self._tracker.release_many(record.handles())
        self._thumbnail_cache.clear(record_id)
        Log.debug("Record removed", record_id=record_id)
        return record

    def apply_outcomes(self, outcomes: Iterable[ExtractionOutcome]) -> int:
        """Fold extraction outcomes back into the store.

        Outcomes for records removed in the meantime are skipped. Returns the
        number of records updated.
        """
        applied = 0
        for outcome in outcomes:
            if outcome.record_id not in self:
                Log.warning("Dropping outcome for unknown record", record_id=outcome.record_id)
                continue
            self.replace(outcome.record)
            applied += 1
        return applied

    def merge(self, record_ids: list[str]) -> DocumentRecord:
        """Combine several records into one, in the given order.

        The merged record owns the sources' page images; the sources' documents
        and thumbnails are released and the sources leave the store in the same
        step. The merged record takes the position of the earliest source.

        Raises:
            InvalidArgumentError: for fewer than two ids, repeated or unknown ids.
            RenderError: if a source document cannot be loaded. The store is
                left unchanged.
        """
        if len(record_ids) < 2:
            raise InvalidArgumentError("Merging needs at least two records")
        if len(set(record_ids)) != len(record_ids):
            raise InvalidArgumentError("Merge ids must be distinct")
        sources = [self.get(record_id) for record_id in record_ids]

        documents = [self._tracker.read(source.source_document) for source in sources]
        # the merged record keeps every source page image, so no source may be skipped
        for source, document in zip(sources, documents):
            try:
                self._converter.page_count(document)
            except RenderError as exc:
                raise RenderError(f"Record {source.id} cannot be merged: {exc}") from exc

        merged_document = self._converter.merge_documents(documents)
        page_images = [handle for source in sources for handle in source.page_images]
        merged_handle = self._tracker.create(merged_document, "application/pdf")
        try:
            record = DocumentRecord.new(
                page_images=page_images,
                source_document=merged_handle,
                source_name=" + ".join(source.source_name for source in sources),
            )
            record = replace(
                self._with_thumbnail(record, self._tracker.read(page_images[0])),
                extracted_fields=merge_fields(
                    [source.extracted_fields for source in sources if source.extracted_fields]
                ),
            )
        except PipelineError:
            self._tracker.release(merged_handle)
            raise

        position = min(self._index(record_id) for record_id in record_ids)
        for source in sources:
            self._records.pop(self._index(source.id))
            released = [source.source_document]
            if source.thumbnail is not None:
                released.append(source.thumbnail)
            self._tracker.release_many(released)
            self._thumbnail_cache.clear(source.id)
        self._records.insert(position, record)

        Log.info(f"Merged {len(sources)} records", record_id=record.id, pages=len(page_images))
        return record

    def split(self, record_id: str) -> list[DocumentRecord]:
        """Replace a multi-page record with one record per page.

        Children start without extracted fields.

        Raises:
            RenderError: if no page of the record's document can be rendered.
        """
        parent = self.get(record_id)
        parts = self._converter.split_into_single_page_documents(
            self._tracker.read(parent.source_document)
        )
        if not parts:
            raise RenderError(f"No pages of record {record_id} could be rendered")

        children: list[DocumentRecord] = []
        created: list[str] = []
        try:
            for number, (document, image) in enumerate(parts, start=1):
                created.append(self._tracker.create(image.data, image.mime_type))
                created.append(self._tracker.create(document, "application/pdf"))
                child = DocumentRecord.new(
                    page_images=[created[-2]],
                    source_document=created[-1],
                    source_name=f"{parent.source_name}#page={number}",
                )
                children.append(self._with_thumbnail(child, image.data))
        except PipelineError:
            self._tracker.release_many(created)
            for child in children:
                self._tracker.release_many(child.handles())
                self._thumbnail_cache.clear(child.id)
            raise

        position = self._index(record_id)
        self._records[position : position + 1] = children
        self._tracker.release_many(parent.handles())
        self._thumbnail_cache.clear(record_id)

        Log.info(f"Split record into {len(children)} records", record_id=record_id)
        return children

    def clear(self) -> None:
        self._records.clear()
        self._tracker.release_all()
        self._thumbnail_cache.clear_all()

    def snapshot(self) -> list[dict[str, Any]]:
        return [
            RecordSnapshot(
                id=record.id,
                source_name=record.source_name,
                processing_state=record.processing_state,
                extracted_fields=record.extracted_fields,
            ).to_dict()
            for record in self._records
        ]

    @staticmethod
    def restore(data: list[dict[str, Any]]) -> list[RecordSnapshot]:
        """Rebuild record metadata written by ``snapshot``."""
        return [RecordSnapshot.from_dict(entry) for entry in data]

    def _with_thumbnail(self, record: DocumentRecord, image_bytes: bytes) -> DocumentRecord:
        thumbnail = self._thumbnails.generate_or_placeholder(image_bytes)
        handle = self._tracker.create(thumbnail.data, thumbnail.mime_type)
        self._thumbnail_cache.cache(record.id, thumbnail)
        return replace(record, thumbnail=handle, processing_state=ProcessingState.THUMBNAILED)

    def _index(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise InvalidArgumentError(f"Unknown record id: {record_id}")


def merge_fields(fields: list[ExtractedFields]) -> ExtractedFields | None:
    """Group the fields of merged receipts.

    Vendor, date and tax id come from the first source that has them; the
    amount is the sum of the known amounts. The group counts as failed only
    when every source's extraction failed.
    """
    if not fields:
        return None
    amounts = [item.amount for item in fields if item.amount is not None]
    return ExtractedFields(
        raw_text="\n\n".join(item.raw_text for item in fields if item.raw_text),
        confidence=sum(item.confidence for item in fields) / len(fields),
        vendor=next((item.vendor for item in fields if item.vendor), None),
        date=next((item.date for item in fields if item.date), None),
        amount=sum(amounts) if amounts else None,
        tax_id=next((item.tax_id for item in fields if item.tax_id), None),
        line_items=[line for item in fields for line in item.line_items],
        failed=all(item.failed for item in fields),
    )
