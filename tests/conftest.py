import io

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.resources.tracker import ResourceTracker
from app.session.cache import SessionCache
from app.thumbnails.cache import ThumbnailCache


def make_pdf(pages: list[str]) -> bytes:
    """Build a letter-size PDF with one line of text per page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for text in pages:
        c.drawString(72, 720, text)
        c.showPage()
    c.save()
    return buf.getvalue()


def make_image(
    size: tuple[int, int],
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 30, 30),
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """A single-page PDF with known text content."""
    return make_pdf(["Receipt total 1,000"])


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    """A three-page PDF, one receipt line per page."""
    return make_pdf(["Page one receipt", "Page two receipt", "Page three receipt"])


@pytest.fixture()
def png_bytes() -> bytes:
    """A 300x200 opaque PNG."""
    return make_image((300, 200))


@pytest.fixture()
def rgba_png_bytes() -> bytes:
    """A 120x80 fully transparent PNG."""
    return make_image((120, 80), mode="RGBA", color=(0, 0, 0, 0))


@pytest.fixture()
def large_jpeg_bytes() -> bytes:
    """A 1600x1200 JPEG photo-sized image."""
    return make_image((1600, 1200), fmt="JPEG")


@pytest.fixture()
def tracker() -> ResourceTracker:
    return ResourceTracker()


@pytest.fixture()
def session_cache() -> SessionCache:
    return SessionCache()


@pytest.fixture()
def thumbnail_cache(session_cache: SessionCache) -> ThumbnailCache:
    return ThumbnailCache(session_cache)


@pytest.fixture()
def pdf_factory():
    return make_pdf


@pytest.fixture()
def image_factory():
    return make_image
