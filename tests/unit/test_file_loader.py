from pathlib import Path

import pytest

from app.ingestion.file_loader import FileLoader
from app.pipeline.exceptions import UnsupportedFileTypeError


class TestLoad:
    def test_loads_pdf(self, tmp_path: Path, sample_pdf_bytes: bytes) -> None:
        path = tmp_path / "receipt.pdf"
        path.write_bytes(sample_pdf_bytes)
        loaded = FileLoader().load(path)
        assert loaded.name == "receipt.pdf"
        assert loaded.content_type == "application/pdf"
        assert loaded.is_pdf
        assert loaded.data == sample_pdf_bytes

    def test_loads_image(self, tmp_path: Path, png_bytes: bytes) -> None:
        path = tmp_path / "photo.png"
        path.write_bytes(png_bytes)
        loaded = FileLoader().load(path)
        assert loaded.content_type == "image/png"
        assert loaded.is_image

    def test_resolves_relative_to_base_dir(self, tmp_path: Path, png_bytes: bytes) -> None:
        (tmp_path / "photo.jpg").write_bytes(png_bytes)
        loaded = FileLoader(base_dir=tmp_path).load(Path("photo.jpg"))
        assert loaded.content_type == "image/jpeg"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="File not found"):
            FileLoader().load(tmp_path / "missing.pdf")

    def test_unsupported_type_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        with pytest.raises(UnsupportedFileTypeError, match="unsupported type"):
            FileLoader().load(path)

    def test_load_many_keeps_order(self, tmp_path: Path, png_bytes: bytes) -> None:
        names = ["b.png", "a.png", "c.png"]
        for name in names:
            (tmp_path / name).write_bytes(png_bytes)
        loaded = FileLoader(base_dir=tmp_path).load_many([Path(n) for n in names])
        assert [f.name for f in loaded] == names
