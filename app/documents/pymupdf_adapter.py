import pymupdf
from PIL import Image

from app.documents.base import BasePageRenderer
from app.pipeline.exceptions import RenderError


class PyMuPdfRenderer(BasePageRenderer):
    """Rasterizes PDF pages using PyMuPDF."""

    def page_count(self, document: bytes) -> int:
        try:
            with pymupdf.open(stream=document, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return int(doc.page_count)
        except Exception as exc:
            raise RenderError(f"pymupdf could not open document: {exc}") from exc

    def render_page(self, document: bytes, page_index: int, scale: float) -> Image.Image:
        try:
            with pymupdf.open(stream=document, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if not 0 <= page_index < doc.page_count:
                    raise RenderError(
                        f"Page index {page_index} out of range for {doc.page_count} pages"
                    )
                page = doc.load_page(page_index)
                # alpha=False renders onto an opaque white canvas
                pix = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
                return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"pymupdf render of page {page_index} failed: {exc}") from exc
