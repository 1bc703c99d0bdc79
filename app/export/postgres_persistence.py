from pathlib import Path

from app.config.settings import Settings
from app.database.models import ReceiptRow
from app.database.repositories.receipts_repository import ReceiptsRepository
from app.export.base import BaseReceiptPersistence
from app.export.file_storage import LocalFileStorage


class PostgresReceiptPersistence(BaseReceiptPersistence):
    """Files on local disk, receipt rows in PostgreSQL."""

    def __init__(self, *, storage: LocalFileStorage, repository: ReceiptsRepository) -> None:
        self._storage = storage
        self._repository = repository

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostgresReceiptPersistence":
        return cls(
            storage=LocalFileStorage(
                Path(settings.files_root),
                secret=settings.signed_url_secret,
                base_url=settings.files_base_url,
            ),
            repository=ReceiptsRepository(),
        )

    def store(self, record_id: str, name: str, payload: bytes, content_type: str) -> str:
        _ = content_type
        return self._storage.write(record_id, name, payload)

    def retrieve_signed_url(self, path: str, ttl_seconds: int) -> str:
        return self._storage.sign(path, ttl_seconds)

    def upsert_record(self, row: ReceiptRow) -> ReceiptRow:
        return self._repository.upsert(row)

    def delete_record(self, record_id: str) -> None:
        self._repository.delete(record_id)
