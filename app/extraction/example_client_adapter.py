"""Example field-extraction client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseExtractionClient and register the provider in FieldExtractorFactory.
"""

import json
from typing import ClassVar

from app.extraction.client_base import BaseExtractionClient


class ExampleClientAdapter(BaseExtractionClient):
    """Example adapter that returns a fixed valid extraction JSON.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "vendor": None,
        "date": None,
        "amount": None,
        "taxId": None,
        "items": [],
        "confidence": 0.5,
    }

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = self.DEFAULT_RESPONSE if response is None else response

    async def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self._response, ensure_ascii=False)
