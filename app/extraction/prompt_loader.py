import json
from pathlib import Path

from app.extraction.exceptions import ExtractionError

PROMPT_DIR = Path(__file__).parent / "prompts"

SYSTEM_PROMPT_FILE = "system_prompt.txt"
EXTRACTION_PROMPT_FILE = "extraction_prompt.txt"
EXTRACTION_SCHEMA_FILE = "extraction_schema.json"


def load_text(path: Path | None, default_name: str) -> str:
    """Read a bundled prompt file, or *path* when given.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    target = path if path is not None else PROMPT_DIR / default_name
    try:
        return target.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load prompt file '{target.name}': {exc}") from exc


def load_system_prompt(path: Path | None = None) -> str:
    return load_text(path, SYSTEM_PROMPT_FILE).strip()


def load_prompt_template(path: Path | None = None) -> str:
    """Load the user prompt template.

    The template carries ``{ocr_text}`` and ``{json_schema}`` placeholders and
    is filled with ``str.format``; literal braces are doubled.
    """
    return load_text(path, EXTRACTION_PROMPT_FILE)


def load_json_schema(path: Path | None = None) -> tuple[str, dict[str, object]]:
    """Load the response JSON schema as both raw text and a parsed dict.

    Raises:
        ExtractionError: if the file cannot be read or is not a JSON object.
    """
    raw = load_text(path, EXTRACTION_SCHEMA_FILE)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Invalid JSON schema: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ExtractionError("JSON schema must be an object")
    return raw, parsed
