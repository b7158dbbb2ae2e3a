"""Model backend — chat completions over a Conversation via OpenAI."""
import logging
from typing import Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from .config import settings
from .conversation import Conversation
from .tools.base import Tool
from .tools.registry import describe_tools

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I couldn't generate a response."

SYSTEM_PROMPT = """You are a helpful assistant integrated with various tools.
When users ask for information from GitHub, web browsing, or search results,
the matching tool fetches that information first and its output is added to
the conversation as a "Tool response" system message.

Available tools:
{tool_list}

For general questions, provide helpful, concise, and accurate answers.
For tool-specific requests, answer from the tool response. If the tool failed,
say so briefly and help the user as best you can."""


def build_system_prompt(tools: Optional[Sequence[Tool]] = None) -> str:
    return SYSTEM_PROMPT.replace("{tool_list}", describe_tools(tools))


class ModelBackendError(Exception):
    """The model backend could not produce a completion."""


class ModelBackend(Protocol):
    def add_user_message(self, conversation: Conversation, text: str) -> None:
        ...

    def add_context_message(self, conversation: Conversation, text: str) -> None:
        ...

    def reset_history(self, conversation: Conversation) -> None:
        ...

    async def get_completion(self, conversation: Conversation) -> str:
        ...


class OpenAIChatBackend:
    def __init__(
        self,
        api_key: str = "",
        base_url: str = "",
        model: str = "",
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.model = model or settings.openai_chat_model
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def add_user_message(self, conversation: Conversation, text: str) -> None:
        conversation.append("user", text)

    def add_context_message(self, conversation: Conversation, text: str) -> None:
        """Ground the next reply in tool output (system role, not user-authored)."""
        conversation.append("system", f"Tool response: {text}")

    def reset_history(self, conversation: Conversation) -> None:
        conversation.reset()

    async def get_completion(self, conversation: Conversation) -> str:
        sid = conversation.session_id
        try:
            client = self._get_client()
            response = await client.chat.completions.create(
                model=self.model,
                messages=conversation.history(),
            )
        except OpenAIError as e:
            logger.error(f"[{sid}] Chat completion failed: {type(e).__name__}: {e}")
            raise ModelBackendError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        reply = (content or "").strip() or FALLBACK_REPLY
        conversation.append("assistant", reply)
        logger.info(f"[{sid}] Model reply: {reply[:200]}")
        return reply
