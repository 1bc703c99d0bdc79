from dataclasses import dataclass
from datetime import datetime


@dataclass
class ReceiptRow:
    """Represents a row from the receipts table."""

    id: str
    vendor: str | None = None
    date: str | None = None
    amount: int | None = None
    tax_id: str | None = None
    memo: str | None = None
    pdf_path: str | None = None
    thumbnail_path: str | None = None
    confidence: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
