from app.config.settings import Settings
from app.documents.base import BasePageRenderer
from app.documents.pdfplumber_adapter import PdfPlumberRenderer
from app.documents.pymupdf_adapter import PyMuPdfRenderer


class PageRendererFactory:
    """Creates the correct page renderer based on settings."""

    ADAPTERS: dict[str, type[BasePageRenderer]] = {
        "pdfplumber": PdfPlumberRenderer,
        "pymupdf": PyMuPdfRenderer,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePageRenderer:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
