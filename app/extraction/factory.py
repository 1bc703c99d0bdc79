from typing import ClassVar

from app.config.settings import Settings
from app.extraction.base import BaseFieldExtractor
from app.extraction.example_client_adapter import ExampleClientAdapter
from app.extraction.field_extractor import FieldExtractor
from app.extraction.google_vision_adapter import GoogleVisionRecognizer
from app.extraction.heuristic import HeuristicFieldExtractor
from app.extraction.openai_client_adapter import OpenAIClientAdapter
from app.extraction.text_recognition import BaseTextRecognizer, ExampleTextRecognizer


class TextRecognizerFactory:
    """Creates the configured text-recognition adapter."""

    PROVIDERS: ClassVar[tuple[str, ...]] = ("example", "google_vision")

    @classmethod
    def create(cls, settings: Settings) -> BaseTextRecognizer:
        provider = settings.ocr_provider.lower()
        if provider == "example":
            return ExampleTextRecognizer()
        if provider == "google_vision":
            return GoogleVisionRecognizer(
                api_key=settings.ocr_api_key,
                timeout_seconds=settings.ocr_timeout_seconds,
                endpoint=settings.ocr_endpoint,
            )
        raise ValueError(
            f"Unknown OCR provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )


class FieldExtractorFactory:
    """Creates the configured field-extraction adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseFieldExtractor:
        """Create a configured field extractor from application settings."""
        provider = settings.extraction_provider.lower()
        if provider == "heuristic":
            return HeuristicFieldExtractor()
        if provider == "example":
            return FieldExtractor(
                client=ExampleClientAdapter(),
                model="example",
                temperature=0.0,
            )
        client = OpenAIClientAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            timeout_seconds=settings.extraction_openai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return FieldExtractor(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            temperature=settings.extraction_openai_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.extraction_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "extraction_openai_compatible_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "heuristic",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        if provider == "openai":
            return settings.extraction_openai_api_key
        # Hosted OpenAI-compatible providers share the compatible key; ollama needs none.
        return settings.extraction_openai_compatible_api_key or "unused"

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        if provider == "openai":
            return settings.extraction_openai_model_name
        return (
            settings.extraction_openai_compatible_model_name
            or settings.extraction_openai_model_name
        )
