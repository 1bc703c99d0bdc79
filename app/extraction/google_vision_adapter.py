import base64
from typing import Any

import httpx

from app.extraction.models import TextRecognitionResult
from app.extraction.text_recognition import BaseTextRecognizer, mean_confidence
from app.logging.logger import Log
from app.pipeline.exceptions import ServiceError

DEFAULT_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"


class GoogleVisionRecognizer(BaseTextRecognizer):
    """Text recognition through the Cloud Vision ``images:annotate`` REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int = 30,
        endpoint: str = DEFAULT_ENDPOINT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._endpoint = endpoint
        self._http_client = http_client

    async def recognize(self, image_bytes: bytes, language: str) -> TextRecognitionResult:
        if not self._api_key:
            raise ServiceError("Text recognition API key is not configured")

        payload = build_request(image_bytes, language)
        if self._http_client is not None:
            data = await self._post(self._http_client, payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                data = await self._post(client, payload)

        result = parse_vision_response(data)
        Log.debug(
            "Text recognized",
            chars=len(result.text),
            words=len(result.word_confidences),
            confidence=f"{result.confidence:.3f}",
        )
        return result

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await client.post(
                self._endpoint,
                params={"key": self._api_key},
                json=payload,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ServiceError(
                f"Text recognition API returned {exc.response.status_code}: "
                f"{exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ServiceError(f"Text recognition network error: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ServiceError(f"Text recognition returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ServiceError("Text recognition response must be a JSON object")
        return data


def build_request(image_bytes: bytes, language: str) -> dict[str, Any]:
    return {
        "requests": [
            {
                "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                "features": [{"type": "DOCUMENT_TEXT_DETECTION"}],
                "imageContext": {"languageHints": [language]},
            }
        ]
    }


def parse_vision_response(data: dict[str, Any]) -> TextRecognitionResult:
    """Flatten an ``images:annotate`` response into text plus word confidences.

    Words are collected across every page, block and paragraph. Words the
    service reported without a confidence are not counted.

    Raises:
        ServiceError: if the response carries an API-level error.
    """
    responses = data.get("responses") or [{}]
    first = responses[0] if isinstance(responses[0], dict) else {}
    error = first.get("error")
    if error:
        message = error.get("message", error) if isinstance(error, dict) else error
        raise ServiceError(f"Text recognition API error: {message}")

    annotation = first.get("fullTextAnnotation") or {}
    text = annotation.get("text") or ""

    word_confidences: list[float] = []
    for page in annotation.get("pages") or []:
        for block in page.get("blocks") or []:
            for paragraph in block.get("paragraphs") or []:
                for word in paragraph.get("words") or []:
                    confidence = word.get("confidence")
                    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
                        word_confidences.append(float(confidence))

    return TextRecognitionResult(
        text=text,
        confidence=mean_confidence(word_confidences),
        word_confidences=word_confidences,
    )
