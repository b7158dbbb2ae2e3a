"""Shared fixtures: a recording model backend and canned tool-backend transports."""
import json

import httpx
import pytest

from chatgate.conversation import Conversation
from chatgate.llm import ModelBackendError


class FakeModelBackend:
    """Model backend that records context messages and replies from a script."""

    def __init__(self, reply: str = "model reply", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.context_messages = []
        self.completions = 0
        self.resets = 0

    def add_user_message(self, conversation: Conversation, text: str) -> None:
        conversation.append("user", text)

    def add_context_message(self, conversation: Conversation, text: str) -> None:
        self.context_messages.append(text)
        conversation.append("system", f"Tool response: {text}")

    def reset_history(self, conversation: Conversation) -> None:
        self.resets += 1
        conversation.reset()

    async def get_completion(self, conversation: Conversation) -> str:
        self.completions += 1
        if self.fail:
            raise ModelBackendError("model unreachable")
        conversation.append("assistant", self.reply)
        return self.reply


def json_transport(body, status_code: int = 200, calls=None) -> httpx.MockTransport:
    """Transport answering every POST with ``body``; request bodies go to ``calls``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append((str(request.url), json.loads(request.content)))
        if isinstance(body, (dict, list)):
            return httpx.Response(status_code, json=body)
        return httpx.Response(status_code, text=body)

    return httpx.MockTransport(handler)


def raising_transport(exc_type) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("backend down", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def fake_model():
    return FakeModelBackend()


@pytest.fixture
def conversation():
    return Conversation("sess-1", system_prompt="You are a test assistant.")
