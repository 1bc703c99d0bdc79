"""AI-powered receipt field extractor."""

import json
from pathlib import Path

from app.extraction.base import BaseFieldExtractor
from app.extraction.client_base import BaseExtractionClient
from app.extraction.exceptions import ExtractionError
from app.extraction.parsing import build_fields
from app.extraction.prompt_loader import (
    load_json_schema,
    load_prompt_template,
    load_system_prompt,
)
from app.logging.logger import Log
from app.records.models import ExtractedFields

EMPTY_TEXT_CONFIDENCE = 0.5
SERVICE_FAILURE_CONFIDENCE = 0.5
PARSE_FAILURE_CONFIDENCE = 0.4


class FieldExtractor(BaseFieldExtractor):
    """Extracts vendor, date, amount, tax id and line items using an AI provider."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = load_system_prompt() if system_prompt is None else system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        self._json_schema, self._json_schema_dict = load_json_schema(json_schema_path)

    async def extract(self, raw_text: str) -> ExtractedFields:
        if not raw_text.strip():
            Log.warning("Skipping field extraction: recognized text is empty")
            return ExtractedFields(
                raw_text=raw_text, confidence=EMPTY_TEXT_CONFIDENCE, failed=True
            )

        prompt = self._build_prompt(raw_text)
        Log.debug(f"Extraction prompt:\n{prompt}")

        try:
            raw_response = await self._call_ai(prompt)
        except ExtractionError as exc:
            Log.error(f"Field extraction service failed: {exc}")
            return ExtractedFields(
                raw_text=raw_text, confidence=SERVICE_FAILURE_CONFIDENCE, failed=True
            )
        Log.debug(f"AI raw response:\n{raw_response}")

        try:
            fields = build_fields(self._parse_json(raw_response), raw_text)
        except (ExtractionError, ArithmeticError, ValueError) as exc:
            Log.error(f"Field extraction response unusable: {exc}")
            return ExtractedFields(
                raw_text=raw_text, confidence=PARSE_FAILURE_CONFIDENCE, failed=True
            )

        Log.info(
            "Field extraction complete",
            vendor=fields.vendor,
            date=fields.date,
            amount=fields.amount,
            items=len(fields.line_items),
        )
        return fields

    def _build_prompt(self, raw_text: str) -> str:
        return self._prompt_template.format(
            ocr_text=raw_text,
            json_schema=self._json_schema,
        )

    async def _call_ai(self, prompt: str) -> str:
        return await self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned, parse_constant=_reject_constant)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed


def _reject_constant(name: str) -> object:
    raise ExtractionError(f"Non-finite number in JSON response: {name}")
