from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from multimodal.summarization.exceptions import SummarizationError, SummarizationNetworkError
from multimodal.summarization.openai_client_adapter import OpenAIClientAdapter


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_adapter(mock_client: MagicMock) -> OpenAIClientAdapter:
    with patch(
        "multimodal.summarization.openai_client_adapter.openai.AsyncOpenAI",
        return_value=mock_client,
    ):
        return OpenAIClientAdapter(api_key="k", timeout_seconds=30, base_url=None)


async def _call(adapter: OpenAIClientAdapter) -> str:
    return await adapter.create_chat_completion(
        model="m",
        temperature=0.1,
        system_prompt="system",
        user_prompt="user",
    )


class TestOpenAIClientAdapter:
    @pytest.mark.asyncio
    async def test_returns_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_make_mock_response("A short summary.")
        )
        content = await _call(_make_adapter(mock_client))
        assert content == "A short summary."

    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_make_mock_response("ok"))
        await _call(_make_adapter(mock_client))
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["temperature"] == 0.1
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]

    @pytest.mark.asyncio
    async def test_raises_error_for_empty_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_make_mock_response(None))
        with pytest.raises(SummarizationError, match="empty response"):
            await _call(_make_adapter(mock_client))

    @pytest.mark.asyncio
    async def test_raises_error_for_no_choices(self) -> None:
        response = MagicMock()
        response.choices = []
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=response)
        with pytest.raises(SummarizationError, match="no choices"):
            await _call(_make_adapter(mock_client))

    @pytest.mark.asyncio
    async def test_raises_network_error_on_connection_failure(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=MagicMock())
        )
        with pytest.raises(SummarizationNetworkError, match="network error"):
            await _call(_make_adapter(mock_client))

    @pytest.mark.asyncio
    async def test_raises_network_error_on_timeout(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=httpx.TimeoutException("timeout")
        )
        with pytest.raises(SummarizationNetworkError, match="network error"):
            await _call(_make_adapter(mock_client))

    @pytest.mark.asyncio
    async def test_raises_network_error_on_api_error(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="server error", request=MagicMock(), body=None)
        )
        with pytest.raises(SummarizationNetworkError, match="API error"):
            await _call(_make_adapter(mock_client))
