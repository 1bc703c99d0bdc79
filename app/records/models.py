import mimetypes
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ProcessingState(str, Enum):
    INGESTED = "ingested"
    THUMBNAILED = "thumbnailed"
    EXTRACTED = "extracted"
    EXTRACTION_FAILED = "extraction_failed"


class IngestMode(str, Enum):
    """How a multi-page PDF becomes records: one per file or one per page."""

    MERGE = "merge"
    SPLIT = "split"


@dataclass(frozen=True)
class RasterImage:
    """Encoded raster image plus its pixel dimensions."""

    data: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class InputFile:
    """An uploaded file before ingestion."""

    name: str
    content_type: str
    data: bytes

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "InputFile":
        content_type, _ = mimetypes.guess_type(name)
        return cls(name=name, content_type=content_type or "application/octet-stream", data=data)

    @classmethod
    def from_path(cls, path: Path) -> "InputFile":
        return cls.from_bytes(path.name, path.read_bytes())


@dataclass(frozen=True)
class LineItem:
    """A single priced line on a receipt."""

    description: str
    price: int
    quantity: int | None = None


@dataclass(frozen=True)
class ExtractedFields:
    """Structured result of OCR plus field extraction for one record."""

    raw_text: str
    confidence: float
    vendor: str | None = None
    date: str | None = None  # YYYY-MM-DD
    amount: int | None = None
    tax_id: str | None = None  # T + 13 digits
    line_items: list[LineItem] = field(default_factory=list)
    # Set when the extraction service or its reply was unusable.
    failed: bool = False

    @property
    def has_structured_data(self) -> bool:
        return any(
            value is not None for value in (self.vendor, self.date, self.amount, self.tax_id)
        ) or bool(self.line_items)


@dataclass(frozen=True)
class DocumentRecord:
    """One logical receipt/invoice flowing through the pipeline.

    ``page_images``, ``source_document`` and ``thumbnail`` are handles owned by
    the session's ResourceTracker. Records are immutable; pipeline stages return
    updated copies via ``dataclasses.replace``.
    """

    id: str
    page_images: list[str]
    source_document: str
    thumbnail: str | None = None
    extracted_fields: ExtractedFields | None = None
    processing_state: ProcessingState = ProcessingState.INGESTED
    source_name: str = ""

    @classmethod
    def new(
        cls,
        *,
        page_images: list[str],
        source_document: str,
        source_name: str = "",
    ) -> "DocumentRecord":
        return cls(
            id=str(uuid.uuid4()),
            page_images=list(page_images),
            source_document=source_document,
            source_name=source_name,
        )

    @property
    def primary_image(self) -> str | None:
        return self.page_images[0] if self.page_images else None

    def handles(self) -> list[str]:
        """All resource handles referenced by this record."""
        handles = [*self.page_images, self.source_document]
        if self.thumbnail is not None:
            handles.append(self.thumbnail)
        return handles
