import io

import pytest
from PIL import Image

from app.pipeline.exceptions import ThumbnailError
from app.thumbnails.generator import ThumbnailGenerator, fit_within


def _decode(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


class TestFitWithin:
    def test_downscales_by_limiting_side(self) -> None:
        assert fit_within((1600, 1200), 400, 400) == (400, 300)

    def test_never_enlarges(self) -> None:
        assert fit_within((120, 80), 400, 400) == (120, 80)

    def test_portrait(self) -> None:
        assert fit_within((1224, 1584), 400, 400) == (309, 400)

    def test_invalid_size_raises(self) -> None:
        with pytest.raises(ValueError):
            fit_within((0, 10), 400, 400)


class TestGenerate:
    def test_large_image_fits_bounds(self, large_jpeg_bytes: bytes) -> None:
        thumbnail = ThumbnailGenerator().generate(large_jpeg_bytes)
        assert (thumbnail.width, thumbnail.height) == (400, 300)
        decoded = _decode(thumbnail.data)
        assert decoded.format == "JPEG"
        assert decoded.size == (400, 300)

    def test_custom_bounds(self, large_jpeg_bytes: bytes) -> None:
        thumbnail = ThumbnailGenerator().generate(large_jpeg_bytes, max_width=100, max_height=100)
        assert (thumbnail.width, thumbnail.height) == (100, 75)

    def test_small_image_keeps_size(self, png_bytes: bytes) -> None:
        thumbnail = ThumbnailGenerator().generate(png_bytes)
        assert (thumbnail.width, thumbnail.height) == (300, 200)

    def test_transparency_becomes_white(self, rgba_png_bytes: bytes) -> None:
        thumbnail = ThumbnailGenerator().generate(rgba_png_bytes)
        decoded = _decode(thumbnail.data).convert("RGB")
        red, green, blue = decoded.getpixel((60, 40))
        assert min(red, green, blue) >= 250

    def test_accepts_fractional_quality(self, large_jpeg_bytes: bytes) -> None:
        thumbnail = ThumbnailGenerator().generate(large_jpeg_bytes, quality=0.5)
        assert _decode(thumbnail.data).format == "JPEG"

    def test_empty_input_raises(self) -> None:
        with pytest.raises(ThumbnailError):
            ThumbnailGenerator().generate(b"")

    def test_undecodable_input_raises(self) -> None:
        with pytest.raises(ThumbnailError, match="Thumbnail generation failed"):
            ThumbnailGenerator().generate(b"definitely not an image")

    def test_decompression_bomb_raises(self, monkeypatch, large_jpeg_bytes: bytes) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ThumbnailError, match="Thumbnail generation failed"):
            ThumbnailGenerator().generate(large_jpeg_bytes)


class TestPlaceholder:
    def test_generate_or_placeholder_never_raises(self) -> None:
        generator = ThumbnailGenerator()
        thumbnail = generator.generate_or_placeholder(b"broken")
        assert thumbnail == generator.placeholder()
        assert _decode(thumbnail.data).size == (200, 200)

    def test_decompression_bomb_gets_placeholder(
        self, monkeypatch, large_jpeg_bytes: bytes
    ) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        generator = ThumbnailGenerator()
        assert generator.generate_or_placeholder(large_jpeg_bytes) == generator.placeholder()

    def test_generate_or_placeholder_passes_through(self, png_bytes: bytes) -> None:
        thumbnail = ThumbnailGenerator().generate_or_placeholder(png_bytes)
        assert (thumbnail.width, thumbnail.height) == (300, 200)
