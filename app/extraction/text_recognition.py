from abc import ABC, abstractmethod
from typing import ClassVar

from app.extraction.models import TextRecognitionResult

DEFAULT_TEXT_CONFIDENCE = 0.7


class BaseTextRecognizer(ABC):
    """Contract for all text-recognition (OCR) adapters."""

    @abstractmethod
    async def recognize(self, image_bytes: bytes, language: str) -> TextRecognitionResult:
        """Recognize the text on one encoded image.

        Args:
            image_bytes: JPEG or PNG bytes of the page.
            language: Language hint passed to the service (e.g. ``"ja"``).

        Returns:
            TextRecognitionResult with the full text, the word-level
            confidences, and their mean.

        Raises:
            ServiceError: on transport, authentication, or service failure.
        """


def mean_confidence(word_confidences: list[float]) -> float:
    """Arithmetic mean of word confidences, or the neutral default when empty."""
    if not word_confidences:
        return DEFAULT_TEXT_CONFIDENCE
    return sum(word_confidences) / len(word_confidences)


class ExampleTextRecognizer(BaseTextRecognizer):
    """Offline recognizer that returns a fixed receipt text.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_TEXT: ClassVar[str] = (
        "株式会社山田商店\n"
        "令和5年3月15日\n"
        "コーヒー 550円\n"
        "紅茶 450円\n"
        "合計: 1,000円\n"
        "登録番号:T1234567890123"
    )

    def __init__(self, text: str | None = None, confidence: float = 0.9) -> None:
        self._text = self.DEFAULT_TEXT if text is None else text
        self._confidence = confidence

    async def recognize(self, image_bytes: bytes, language: str) -> TextRecognitionResult:
        _ = image_bytes, language
        words = self._text.split()
        return TextRecognitionResult(
            text=self._text,
            confidence=self._confidence,
            word_confidences=[self._confidence] * len(words),
        )
