import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from app.extraction.exceptions import ExtractionError, ExtractionNetworkError
from app.extraction.openai_client_adapter import OpenAIClientAdapter


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_adapter(mock_client: MagicMock) -> OpenAIClientAdapter:
    with patch(
        "app.extraction.openai_client_adapter.openai.AsyncOpenAI",
        return_value=mock_client,
    ):
        return OpenAIClientAdapter(api_key="k", timeout_seconds=30, base_url=None)


def _complete(adapter: OpenAIClientAdapter) -> str:
    return asyncio.run(
        adapter.create_chat_completion(
            model="m",
            temperature=0.1,
            system_prompt="system",
            user_prompt="user",
            json_schema={"type": "object"},
        )
    )


class TestOpenAIClientAdapter:
    def test_returns_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_make_mock_response('{"ok": true}')
        )
        assert _complete(_make_adapter(mock_client)) == '{"ok": true}'

    def test_sends_strict_json_schema(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_make_mock_response("{}"))
        _complete(_make_adapter(mock_client))
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"]["json_schema"]["name"] == "receipt_fields"
        assert kwargs["response_format"]["json_schema"]["strict"] is True
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    def test_raises_error_for_empty_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_make_mock_response(None))
        with pytest.raises(ExtractionError, match="empty response"):
            _complete(_make_adapter(mock_client))

    def test_raises_error_for_no_choices(self) -> None:
        response = MagicMock()
        response.choices = []
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=response)
        with pytest.raises(ExtractionError, match="no choices"):
            _complete(_make_adapter(mock_client))

    def test_raises_network_error_on_connection_failure(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=MagicMock())
        )
        with pytest.raises(ExtractionNetworkError, match="network error"):
            _complete(_make_adapter(mock_client))
