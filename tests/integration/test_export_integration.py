from dataclasses import replace

import pytest

from app.database.repositories.receipts_repository import ReceiptsRepository
from app.export.exporter import ReceiptExporter
from app.export.postgres_persistence import PostgresReceiptPersistence
from app.records.models import DocumentRecord, ExtractedFields, ProcessingState
from app.resources.tracker import ResourceTracker


@pytest.mark.integration
class TestExportIntegration:
    def test_exports_record_to_disk_and_database(
        self,
        postgres_persistence: PostgresReceiptPersistence,
        receipt_ids: list[str],
        sample_pdf_bytes: bytes,
    ) -> None:
        tracker = ResourceTracker()
        record = replace(
            DocumentRecord.new(
                page_images=[tracker.create(b"jpeg", "image/jpeg")],
                source_document=tracker.create(sample_pdf_bytes, "application/pdf"),
                source_name="receipt.pdf",
            ),
            thumbnail=tracker.create(b"thumb", "image/jpeg"),
            extracted_fields=ExtractedFields(
                raw_text="合計 1,000円", confidence=0.8, vendor="山田商店", amount=1000
            ),
            processing_state=ProcessingState.EXTRACTED,
        )
        receipt_ids.append(record.id)

        result = ReceiptExporter(postgres_persistence, tracker).export(record)

        stored = ReceiptsRepository().find_by_id(record.id)
        assert stored.vendor == "山田商店"
        assert stored.amount == 1000
        assert stored.pdf_path == f"{record.id}/receipt.pdf"
        assert result.pdf_url.startswith(f"/files/{record.id}/receipt.pdf?expires=")

        postgres_persistence.delete_record(record.id)
        receipt_ids.remove(record.id)
