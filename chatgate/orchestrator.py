"""Dispatch orchestrator — routes a message to a tool or straight to the model.

Per message there are two paths:

* no tool matched: the message goes to the model, whose reply is returned verbatim;
* tool matched: the tool runs, its response (success or failure) is added to
  the conversation as exactly one context message, then the model writes the
  final reply from it.

Tool failures therefore come back as a conversational explanation. Only a
failing model backend (``ModelBackendError``) reaches the caller, and the
turn it interrupted is rolled out of the conversation first.
"""
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .conversation import Conversation
from .llm import ModelBackend, ModelBackendError
from .protocol import ToolResponse
from .tools.router import ToolRouter

logger = logging.getLogger(__name__)

MAX_ERROR_DETAIL_CHARS = 300


class RouteState(str, Enum):
    NO_TOOL_MATCHED = "no_tool_matched"
    TOOL_MATCHED = "tool_matched"


class OrchestratorResult(BaseModel):
    reply: str
    state: RouteState
    tool_id: Optional[str] = None
    tool_response: Optional[ToolResponse] = None


def tool_context_message(tool_id: str, response: ToolResponse) -> str:
    """Context annotation that grounds the model's next reply in a tool result."""
    if not response.is_error:
        return (
            f"The {tool_id} tool returned:\n{response.response_text}\n\n"
            "Please respond to the user based on this tool result."
        )
    detail = response.error_detail or ""
    if len(detail) > MAX_ERROR_DETAIL_CHARS:
        detail = detail[:MAX_ERROR_DETAIL_CHARS] + "..."
    return (
        f"I tried to use the {tool_id} tool for the user, but it encountered an error: "
        f"{response.response_text} (cause: {detail})\n\n"
        "Explain the problem to the user briefly and help as best you can."
    )


class ChatOrchestrator:
    def __init__(self, router: ToolRouter, model: ModelBackend):
        self.router = router
        self.model = model

    async def process_message(self, conversation: Conversation, message: str) -> OrchestratorResult:
        sid = conversation.session_id
        tool = self.router.match(message)

        if tool is None:
            logger.info(f"[{sid}] No tool matched, asking the model directly")
            reply = await self._complete(conversation, message)
            return OrchestratorResult(reply=reply, state=RouteState.NO_TOOL_MATCHED)

        tool_response = await self.router.execute(tool, message)
        if tool_response.is_error:
            logger.warning(f"[{sid}] Tool {tool.id} failed ({tool_response.error_kind}), model will explain")

        reply = await self._complete(conversation, message, tool_context_message(tool.id, tool_response))
        return OrchestratorResult(
            reply=reply,
            state=RouteState.TOOL_MATCHED,
            tool_id=tool.id,
            tool_response=tool_response,
        )

    async def _complete(self, conversation: Conversation, message: str, context: Optional[str] = None) -> str:
        """Add the turn and ask the model; a failed completion leaves no half turn behind."""
        saved = conversation.snapshot()
        self.model.add_user_message(conversation, message)
        if context is not None:
            self.model.add_context_message(conversation, context)
        try:
            return await self.model.get_completion(conversation)
        except ModelBackendError:
            conversation.restore(saved)
            logger.warning(f"[{conversation.session_id}] Model call failed, turn rolled back")
            raise

    def clear(self, conversation: Conversation):
        """Forget the conversation; tools and router keep no per-conversation state."""
        self.model.reset_history(conversation)
