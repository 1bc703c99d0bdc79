import io

import pdfplumber
from PIL import Image

from app.documents.base import BasePageRenderer
from app.documents.imaging import flatten_onto_white
from app.pipeline.exceptions import RenderError

_POINTS_PER_INCH = 72


class PdfPlumberRenderer(BasePageRenderer):
    """Rasterizes PDF pages using pdfplumber."""

    def page_count(self, document: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(document)) as pdf:
                return len(pdf.pages)
        except Exception as exc:
            raise RenderError(f"pdfplumber could not open document: {exc}") from exc

    def render_page(self, document: bytes, page_index: int, scale: float) -> Image.Image:
        try:
            with pdfplumber.open(io.BytesIO(document)) as pdf:
                if not 0 <= page_index < len(pdf.pages):
                    raise RenderError(
                        f"Page index {page_index} out of range for {len(pdf.pages)} pages"
                    )
                page_image = pdf.pages[page_index].to_image(
                    resolution=_POINTS_PER_INCH * scale
                )
                return flatten_onto_white(page_image.original)
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"pdfplumber render of page {page_index} failed: {exc}") from exc
