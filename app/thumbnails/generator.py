from PIL import Image, ImageDraw, UnidentifiedImageError

from app.documents.imaging import encode_jpeg, open_image
from app.logging.logger import Log
from app.pipeline.exceptions import ThumbnailError
from app.records.models import RasterImage

_PLACEHOLDER_SIZE = (200, 200)
_PLACEHOLDER_INK = (204, 204, 204)


class ThumbnailGenerator:
    """Produces bounded, compressed preview images."""

    def __init__(
        self,
        *,
        max_width: int = 400,
        max_height: int = 400,
        quality: int = 85,
    ) -> None:
        self._max_width = max_width
        self._max_height = max_height
        self._quality = quality
        self._placeholder: RasterImage | None = None

    def generate(
        self,
        image_bytes: bytes,
        max_width: int | None = None,
        max_height: int | None = None,
        quality: float | None = None,
    ) -> RasterImage:
        """Downscale *image_bytes* to fit the bounds and encode as JPEG.

        The scale factor is min(max_width / w, max_height / h, 1.0), so images
        already inside the bounds keep their size. Transparency becomes white.

        Raises:
            ThumbnailError: on any decode, draw or encode failure.
        """
        max_width = max_width or self._max_width
        max_height = max_height or self._max_height
        if not image_bytes:
            raise ThumbnailError("No image data to thumbnail")
        try:
            image = open_image(image_bytes)
            target = fit_within(image.size, max_width, max_height)
            if target != image.size:
                image = image.resize(target, Image.Resampling.LANCZOS)
            return encode_jpeg(image, quality if quality is not None else self._quality)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise ThumbnailError(f"Thumbnail generation failed: {exc}") from exc

    def generate_or_placeholder(
        self,
        image_bytes: bytes,
        max_width: int | None = None,
        max_height: int | None = None,
        quality: float | None = None,
    ) -> RasterImage:
        """Like ``generate`` but substitutes a placeholder instead of raising."""
        try:
            return self.generate(image_bytes, max_width, max_height, quality)
        except ThumbnailError as exc:
            Log.warning(f"Using placeholder thumbnail: {exc}")
            return self.placeholder()

    def placeholder(self) -> RasterImage:
        """A neutral document-outline card, built once per generator."""
        if self._placeholder is None:
            width, height = _PLACEHOLDER_SIZE
            card = Image.new("RGB", _PLACEHOLDER_SIZE, (255, 255, 255))
            draw = ImageDraw.Draw(card)
            draw.rectangle(
                (width * 0.25, height * 0.15, width * 0.75, height * 0.85),
                outline=_PLACEHOLDER_INK,
                width=4,
            )
            for offset in (0.4, 0.5, 0.6):
                draw.line(
                    (width * 0.35, height * offset, width * 0.65, height * offset),
                    fill=_PLACEHOLDER_INK,
                    width=4,
                )
            self._placeholder = encode_jpeg(card, self._quality)
        return self._placeholder


def fit_within(size: tuple[int, int], max_width: int, max_height: int) -> tuple[int, int]:
    """Scale *size* uniformly to fit the bounds, never enlarging it."""
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size {width}x{height}")
    scale = min(max_width / width, max_height / height, 1.0)
    return max(1, min(max_width, round(width * scale))), max(
        1, min(max_height, round(height * scale))
    )
