import io

from PIL import Image, ImageOps

from app.records.models import RasterImage

WHITE = (255, 255, 255)


def load_image(data: bytes) -> Image.Image:
    """Decode *data* fully, keeping its stored orientation and format.

    Raises:
        PIL.UnidentifiedImageError / OSError: if the bytes are not a readable image.
        PIL.Image.DecompressionBombError: if the pixel count is far beyond the limit.
    """
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def apply_orientation(image: Image.Image) -> Image.Image:
    return ImageOps.exif_transpose(image) or image


def open_image(data: bytes) -> Image.Image:
    """Decode *data* fully, applying any EXIF orientation."""
    return apply_orientation(load_image(data))


def flatten_onto_white(image: Image.Image) -> Image.Image:
    """Return an opaque RGB copy of *image*, compositing any alpha onto white."""
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if not has_alpha:
        return image.convert("RGB")
    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, WHITE)
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


def jpeg_quality(quality: float) -> int:
    """Accept 1-100 or a (0, 1] fraction and return a Pillow JPEG quality."""
    if 0 < quality <= 1:
        quality = quality * 100
    return max(1, min(95, round(quality)))


def encode_jpeg(image: Image.Image, quality: float) -> RasterImage:
    flattened = flatten_onto_white(image)
    buf = io.BytesIO()
    flattened.save(buf, format="JPEG", quality=jpeg_quality(quality), optimize=True)
    return RasterImage(
        data=buf.getvalue(),
        width=flattened.width,
        height=flattened.height,
    )


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
