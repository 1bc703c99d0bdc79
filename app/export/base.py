from abc import ABC, abstractmethod

from app.database.models import ReceiptRow


class BaseReceiptPersistence(ABC):
    """Contract for the backend that receives reviewed receipts."""

    @abstractmethod
    def store(self, record_id: str, name: str, payload: bytes, content_type: str) -> str:
        """Store one file for a record and return its storage path."""

    @abstractmethod
    def retrieve_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a time-limited URL for a stored file."""

    @abstractmethod
    def upsert_record(self, row: ReceiptRow) -> ReceiptRow:
        """Insert or update the receipt row and return what was persisted."""

    @abstractmethod
    def delete_record(self, record_id: str) -> None:
        """Delete a receipt row.

        Raises:
            RecordNotFoundError: if the row does not exist.
        """
