from typing import Any

from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.models import ReceiptRow
from app.export.exceptions import RecordNotFoundError

_COLUMNS = (
    "id, vendor, date, amount, tax_id, memo, pdf_path, thumbnail_path, "
    "confidence, created_at, updated_at"
)


class ReceiptsRepository:
    """Database operations for the receipts table."""

    def upsert(self, row: ReceiptRow) -> ReceiptRow:
        """Insert the receipt or update the existing row with the same id."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO receipts
                    (id, vendor, date, amount, tax_id, memo, pdf_path,
                     thumbnail_path, confidence, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
                    ON CONFLICT (id) DO UPDATE
                    SET vendor = EXCLUDED.vendor,
                        date = EXCLUDED.date,
                        amount = EXCLUDED.amount,
                        tax_id = EXCLUDED.tax_id,
                        memo = EXCLUDED.memo,
                        pdf_path = EXCLUDED.pdf_path,
                        thumbnail_path = EXCLUDED.thumbnail_path,
                        confidence = EXCLUDED.confidence,
                        updated_at = NOW()
                    RETURNING {_COLUMNS}
                    """,
                    (
                        row.id,
                        row.vendor,
                        row.date,
                        row.amount,
                        row.tax_id,
                        row.memo,
                        row.pdf_path,
                        row.thumbnail_path,
                        row.confidence,
                    ),
                )
                result = cur.fetchone()
            conn.commit()

        if result is None:
            raise RecordNotFoundError(f"Receipt {row.id} was not written")
        return _to_row(result)

    def find_by_id(self, receipt_id: str) -> ReceiptRow:
        """Find a receipt by id.

        Raises:
            RecordNotFoundError: if no receipt with this id exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM receipts WHERE id = %s",
                    (receipt_id,),
                )
                result = cur.fetchone()

        if result is None:
            raise RecordNotFoundError(f"Receipt {receipt_id} not found")
        return _to_row(result)

    def delete(self, receipt_id: str) -> None:
        """Delete a receipt.

        Raises:
            RecordNotFoundError: if no receipt with this id exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM receipts WHERE id = %s", (receipt_id,))
                if cur.rowcount == 0:
                    raise RecordNotFoundError(f"Receipt {receipt_id} not found")
            conn.commit()


def _to_row(result: dict[str, Any]) -> ReceiptRow:
    return ReceiptRow(
        id=str(result["id"]),
        vendor=result["vendor"],
        date=str(result["date"]) if result["date"] is not None else None,
        amount=result["amount"],
        tax_id=result["tax_id"],
        memo=result["memo"],
        pdf_path=result["pdf_path"],
        thumbnail_path=result["thumbnail_path"],
        confidence=float(result["confidence"]) if result["confidence"] is not None else None,
        created_at=result.get("created_at"),
        updated_at=result.get("updated_at"),
    )
