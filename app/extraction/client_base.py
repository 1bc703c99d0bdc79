from abc import ABC, abstractmethod


class BaseExtractionClient(ABC):
    """Contract for provider-specific field-extraction AI clients."""

    @abstractmethod
    async def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        """Return provider response as plain text."""
