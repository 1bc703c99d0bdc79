from abc import ABC, abstractmethod

from app.records.models import ExtractedFields


class BaseFieldExtractor(ABC):
    """Contract for all structured field-extraction adapters."""

    @abstractmethod
    async def extract(self, raw_text: str) -> ExtractedFields:
        """Turn OCR text into structured receipt fields.

        Extraction is best effort: implementations never raise for service or
        parse failures and instead return a low-confidence result flagged
        ``failed`` without structured fields.

        Args:
            raw_text: Full text recognized on the receipt.

        Returns:
            ExtractedFields carrying *raw_text* and the extraction confidence.
        """
