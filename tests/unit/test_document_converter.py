import io

import pymupdf
import pytest
from PIL import Image

from app.documents.converter import DocumentConverter
from app.documents.pymupdf_adapter import PyMuPdfRenderer
from app.pipeline.exceptions import InvalidArgumentError, RenderError


@pytest.fixture()
def converter() -> DocumentConverter:
    return DocumentConverter(PyMuPdfRenderer())


def _page_sizes(document: bytes) -> list[tuple[float, float]]:
    with pymupdf.open(stream=document, filetype="pdf") as doc:
        return [(page.rect.width, page.rect.height) for page in doc]


class TestRasterize:
    def test_rasterize_page_uses_default_scale(
        self, converter: DocumentConverter, sample_pdf_bytes: bytes
    ) -> None:
        image = converter.rasterize_page(sample_pdf_bytes, 0)
        assert (image.width, image.height) == (1224, 1584)
        assert image.mime_type == "image/jpeg"
        assert Image.open(io.BytesIO(image.data)).format == "JPEG"

    def test_rasterize_page_out_of_range(
        self, converter: DocumentConverter, sample_pdf_bytes: bytes
    ) -> None:
        with pytest.raises(RenderError):
            converter.rasterize_page(sample_pdf_bytes, 1)

    def test_rasterize_all_pages_in_order(
        self, converter: DocumentConverter, three_page_pdf_bytes: bytes
    ) -> None:
        images = converter.rasterize_all_pages(three_page_pdf_bytes, scale=1.0)
        assert len(images) == 3
        assert all((img.width, img.height) == (612, 792) for img in images)

    def test_rasterize_all_pages_of_garbage_is_empty(self, converter: DocumentConverter) -> None:
        assert converter.rasterize_all_pages(b"garbage") == []


class TestEmbedImage:
    def test_page_matches_pixel_dimensions(
        self, converter: DocumentConverter, png_bytes: bytes
    ) -> None:
        document = converter.embed_image_as_single_page_document(png_bytes)
        assert _page_sizes(document) == [(300.0, 200.0)]

    def test_round_trip_preserves_dimensions(
        self, converter: DocumentConverter, png_bytes: bytes
    ) -> None:
        document = converter.embed_image_as_single_page_document(png_bytes)
        images = converter.rasterize_all_pages(document, scale=1.0)
        assert len(images) == 1
        assert (images[0].width, images[0].height) == (300, 200)

    def test_non_png_formats_are_normalized(
        self, converter: DocumentConverter, image_factory
    ) -> None:  # type: ignore[no-untyped-def]
        bmp = image_factory((64, 48), fmt="BMP")
        document = converter.embed_image_as_single_page_document(bmp)
        assert _page_sizes(document) == [(64.0, 48.0)]

    def test_undecodable_image_raises(self, converter: DocumentConverter) -> None:
        with pytest.raises(RenderError, match="Cannot decode"):
            converter.embed_image_as_single_page_document(b"not an image")

    def test_exif_orientation_is_applied(self, converter: DocumentConverter) -> None:
        exif = Image.Exif()
        exif[0x0112] = 6  # rotated 90 degrees clockwise
        buf = io.BytesIO()
        Image.new("RGB", (64, 48), (200, 10, 10)).save(buf, format="JPEG", exif=exif)

        document = converter.embed_image_as_single_page_document(buf.getvalue())

        assert _page_sizes(document) == [(48.0, 64.0)]

    def test_decompression_bomb_raises(
        self, monkeypatch, converter: DocumentConverter, large_jpeg_bytes: bytes
    ) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(RenderError, match="Cannot decode"):
            converter.embed_image_as_single_page_document(large_jpeg_bytes)


class TestSplit:
    def test_one_document_per_page(
        self, converter: DocumentConverter, three_page_pdf_bytes: bytes
    ) -> None:
        parts = converter.split_into_single_page_documents(three_page_pdf_bytes)
        assert len(parts) == 3
        for document, image in parts:
            assert converter.page_count(document) == 1
            assert (image.width, image.height) == (1224, 1584)

    def test_split_pages_keep_their_text(
        self, converter: DocumentConverter, three_page_pdf_bytes: bytes
    ) -> None:
        parts = converter.split_into_single_page_documents(three_page_pdf_bytes)
        with pymupdf.open(stream=parts[1][0], filetype="pdf") as doc:
            assert "Page two receipt" in doc[0].get_text()

    def test_split_garbage_raises(self, converter: DocumentConverter) -> None:
        with pytest.raises(RenderError):
            converter.split_into_single_page_documents(b"garbage")


class TestMerge:
    def test_concatenates_pages_in_order(
        self, converter: DocumentConverter, pdf_factory
    ) -> None:  # type: ignore[no-untyped-def]
        merged = converter.merge_documents(
            [pdf_factory(["A1", "A2"]), pdf_factory(["B1"]), pdf_factory(["C1", "C2", "C3"])]
        )
        with pymupdf.open(stream=merged, filetype="pdf") as doc:
            texts = [page.get_text().strip() for page in doc]
        assert texts == ["A1", "A2", "B1", "C1", "C2", "C3"]

    def test_fewer_than_two_inputs_raises(
        self, converter: DocumentConverter, sample_pdf_bytes: bytes
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            converter.merge_documents([sample_pdf_bytes])

    def test_skips_unloadable_inputs(
        self, converter: DocumentConverter, sample_pdf_bytes: bytes
    ) -> None:
        merged = converter.merge_documents([sample_pdf_bytes, b"garbage", sample_pdf_bytes])
        assert converter.page_count(merged) == 2

    def test_all_inputs_failing_raises(self, converter: DocumentConverter) -> None:
        with pytest.raises(RenderError, match="None of the"):
            converter.merge_documents([b"bad", b"worse"])
