"""Tests for llm.py — OpenAI chat backend over an explicit Conversation."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from chatgate.conversation import Conversation
from chatgate.llm import (
    FALLBACK_REPLY, ModelBackendError, OpenAIChatBackend, build_system_prompt,
)
from chatgate.tools import BrowserTool, SearchTool


def _mock_client(content=None, side_effect=None):
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = content

    mock_client = AsyncMock()
    mock_client.chat.completions.create = AsyncMock(return_value=mock_response, side_effect=side_effect)
    return mock_client


class TestSystemPrompt:
    def test_lists_tools(self):
        prompt = build_system_prompt([SearchTool("http://s/", "k"), BrowserTool("http://b/")])
        assert "- brave-search:" in prompt
        assert "- puppeteer:" in prompt
        assert "{tool_list}" not in prompt

    def test_no_tools(self):
        assert "(no tools available)" in build_system_prompt([])


class TestMessages:
    def test_user_and_context_roles(self):
        backend = OpenAIChatBackend(api_key="k", base_url="http://llm", model="m")
        conv = Conversation("s")
        backend.add_user_message(conv, "show my github repo")
        backend.add_context_message(conv, "Repositories for u: ...")
        assert conv.history() == [
            {"role": "user", "content": "show my github repo"},
            {"role": "system", "content": "Tool response: Repositories for u: ..."},
        ]

    def test_reset_history(self):
        backend = OpenAIChatBackend(api_key="k")
        conv = Conversation("s")
        backend.add_user_message(conv, "hi")
        backend.reset_history(conv)
        assert len(conv) == 0


class TestGetCompletion:
    @pytest.mark.asyncio
    async def test_reply_appended_to_history(self):
        backend = OpenAIChatBackend(api_key="k", model="gpt-test")
        conv = Conversation("s", system_prompt="sys")
        backend.add_user_message(conv, "hello")
        mock_client = _mock_client("  Hi there!  ")

        with patch.object(backend, "_get_client", return_value=mock_client):
            reply = await backend.get_completion(conv)

        assert reply == "Hi there!"
        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert kwargs["messages"][-1] == {"role": "user", "content": "hello"}
        assert conv.history()[-1] == {"role": "assistant", "content": "Hi there!"}

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self):
        backend = OpenAIChatBackend(api_key="k")
        conv = Conversation("s")
        backend.add_user_message(conv, "hello")
        with patch.object(backend, "_get_client", return_value=_mock_client(None)):
            assert await backend.get_completion(conv) == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_injected_client(self):
        mock_client = _mock_client("ok")
        backend = OpenAIChatBackend(api_key="k", client=mock_client)
        conv = Conversation("s")
        backend.add_user_message(conv, "hello")
        assert await backend.get_completion(conv) == "ok"
        mock_client.chat.completions.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        backend = OpenAIChatBackend(api_key="k")
        conv = Conversation("s")
        backend.add_user_message(conv, "hello")
        with patch.object(backend, "_get_client", return_value=_mock_client(side_effect=OpenAIError("down"))):
            with pytest.raises(ModelBackendError):
                await backend.get_completion(conv)
        assert conv.history()[-1]["role"] == "user"
