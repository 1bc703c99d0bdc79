"""Conversions between raster images and paginated (PDF) documents.

Rasterization goes through a pluggable page renderer; document assembly
(embedding, splitting, merging) always uses PyMuPDF.
"""

import pymupdf
from PIL import Image, UnidentifiedImageError

from app.config.settings import Settings
from app.documents.base import BasePageRenderer
from app.documents.factory import PageRendererFactory
from app.documents.imaging import apply_orientation, encode_jpeg, encode_png, load_image
from app.logging.logger import Log
from app.pipeline.exceptions import InvalidArgumentError, RenderError
from app.records.models import RasterImage

_EXIF_ORIENTATION = 0x0112
_EMBEDDABLE_FORMATS = frozenset({"JPEG", "PNG"})


class DocumentConverter:
    """Rasterizes, embeds, splits and merges PDF documents."""

    def __init__(
        self,
        renderer: BasePageRenderer,
        *,
        default_scale: float = 2.0,
        jpeg_quality: int = 90,
    ) -> None:
        self._renderer = renderer
        self._default_scale = default_scale
        self._jpeg_quality = jpeg_quality

    def page_count(self, document: bytes) -> int:
        return self._renderer.page_count(document)

    def rasterize_page(
        self,
        document: bytes,
        page_index: int,
        scale: float | None = None,
    ) -> RasterImage:
        """Render one page to an opaque JPEG.

        Raises:
            RenderError: if the page is out of range or cannot be rendered.
        """
        image = self._renderer.render_page(
            document, page_index, scale if scale is not None else self._default_scale
        )
        try:
            return encode_jpeg(image, self._jpeg_quality)
        except (OSError, ValueError) as exc:
            raise RenderError(f"Encoding page {page_index} failed: {exc}") from exc

    def rasterize_all_pages(
        self,
        document: bytes,
        scale: float | None = None,
    ) -> list[RasterImage]:
        """Render every page in order, skipping pages that fail.

        An empty list means nothing could be rendered; callers decide the fallback.
        """
        try:
            total = self.page_count(document)
        except RenderError as exc:
            Log.error(f"Cannot rasterize document: {exc}")
            return []

        images: list[RasterImage] = []
        for index in range(total):
            try:
                images.append(self.rasterize_page(document, index, scale))
            except RenderError as exc:
                Log.warning(f"Skipping page {index + 1}/{total}: {exc}")
        Log.debug(f"Rasterized {len(images)}/{total} pages")
        return images

    def embed_image_as_single_page_document(self, image_bytes: bytes) -> bytes:
        """Wrap an image in a one-page PDF sized to its pixel dimensions (1 px = 1 pt).

        Raises:
            RenderError: if the image cannot be decoded or embedded.
        """
        try:
            source = load_image(image_bytes)
            orientation = source.getexif().get(_EXIF_ORIENTATION, 1)
            oriented = apply_orientation(source)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise RenderError(f"Cannot decode image: {exc}") from exc

        if source.format in _EMBEDDABLE_FORMATS and orientation == 1:
            payload = image_bytes
        else:
            payload = encode_png(oriented)

        width, height = oriented.size
        try:
            with pymupdf.open() as doc:  # type: ignore[no-untyped-call]
                page = doc.new_page(width=width, height=height)
                page.insert_image(page.rect, stream=payload)
                return bytes(doc.tobytes(garbage=3, deflate=True))
        except Exception as exc:
            raise RenderError(f"Embedding image into PDF failed: {exc}") from exc

    def split_into_single_page_documents(
        self,
        document: bytes,
    ) -> list[tuple[bytes, RasterImage]]:
        """Produce an independent one-page PDF and its rendering for every page.

        Raises:
            RenderError: if the source document cannot be opened.
        """
        try:
            with pymupdf.open(stream=document, filetype="pdf") as source:  # type: ignore[no-untyped-call]
                parts: list[bytes] = []
                for index in range(source.page_count):
                    with pymupdf.open() as single:  # type: ignore[no-untyped-call]
                        single.insert_pdf(source, from_page=index, to_page=index)
                        parts.append(bytes(single.tobytes(garbage=3, deflate=True)))
        except Exception as exc:
            raise RenderError(f"Splitting document failed: {exc}") from exc

        results: list[tuple[bytes, RasterImage]] = []
        for index, part in enumerate(parts):
            try:
                results.append((part, self.rasterize_page(part, 0)))
            except RenderError as exc:
                Log.warning(f"Skipping split page {index + 1}/{len(parts)}: {exc}")
        return results

    def merge_documents(self, documents: list[bytes]) -> bytes:
        """Concatenate the pages of *documents* in order into one new PDF.

        Inputs that fail to load are skipped.

        Raises:
            InvalidArgumentError: if fewer than two documents are given.
            RenderError: if none of the inputs could be loaded.
        """
        if len(documents) < 2:
            raise InvalidArgumentError(
                f"Merging requires at least 2 documents, got {len(documents)}"
            )

        merged = pymupdf.open()  # type: ignore[no-untyped-call]
        try:
            loaded = 0
            for index, document in enumerate(documents):
                try:
                    with pymupdf.open(stream=document, filetype="pdf") as source:  # type: ignore[no-untyped-call]
                        merged.insert_pdf(source)
                    loaded += 1
                except Exception as exc:
                    Log.warning(f"Skipping document {index + 1}/{len(documents)} in merge: {exc}")
            if loaded == 0:
                raise RenderError(f"None of the {len(documents)} documents could be merged")
            Log.info(f"Merged {loaded} documents into {merged.page_count} pages")
            return bytes(merged.tobytes(garbage=3, deflate=True))
        finally:
            merged.close()


def build_converter(settings: Settings) -> DocumentConverter:
    """Build a DocumentConverter with the configured page renderer."""
    return DocumentConverter(
        PageRendererFactory.create(settings),
        default_scale=settings.render_scale,
        jpeg_quality=settings.render_jpeg_quality,
    )
