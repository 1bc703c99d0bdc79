from pathlib import Path

from app.pipeline.exceptions import UnsupportedFileTypeError
from app.records.models import InputFile


class FileLoader:
    """Reads upload files from disk and types them by extension."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir

    def load(self, path: Path) -> InputFile:
        """Read one file.

        Raises:
            FileNotFoundError: if the file does not exist at the resolved path.
            UnsupportedFileTypeError: if it is neither an image nor a PDF.
        """
        resolved = self._resolve_path(path)
        if not resolved.is_file():
            raise FileNotFoundError(f"File not found: {resolved}")
        input_file = InputFile.from_path(resolved)
        if not (input_file.is_pdf or input_file.is_image):
            raise UnsupportedFileTypeError(
                f"'{resolved.name}' has unsupported type '{input_file.content_type}'"
            )
        return input_file

    def load_many(self, paths: list[Path]) -> list[InputFile]:
        return [self.load(path) for path in paths]

    def _resolve_path(self, path: Path) -> Path:
        if self._base_dir is None or path.is_absolute():
            return path
        return self._base_dir / path
