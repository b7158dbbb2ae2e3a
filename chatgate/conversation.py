"""Conversation state — ordered role-tagged history, one object per chat session."""
import asyncio
import logging
import time
from typing import Dict, List

logger = logging.getLogger(__name__)

MAX_HISTORY = 20

ROLES = ("system", "user", "assistant")


class Conversation:
    """History of one chat session.

    The system prompt is kept apart from the rolling history so truncation
    never drops it.
    """

    def __init__(self, session_id: str, system_prompt: str = ""):
        self.session_id = session_id
        self.system_prompt = system_prompt
        self.messages: List[dict] = []
        self.last_activity_time = time.monotonic()

    def append(self, role: str, content: str):
        if role not in ROLES:
            raise ValueError(f"unknown role: {role}")
        if not content:
            return
        self.messages.append({"role": role, "content": content})
        if len(self.messages) > MAX_HISTORY:
            self.messages[:] = self.messages[-MAX_HISTORY:]
        self.touch()

    def history(self) -> List[dict]:
        """Messages to send to the model, system prompt first."""
        head = [{"role": "system", "content": self.system_prompt}] if self.system_prompt else []
        return head + list(self.messages)

    def snapshot(self) -> List[dict]:
        return list(self.messages)

    def restore(self, messages: List[dict]):
        """Roll history back to an earlier ``snapshot()``."""
        self.messages[:] = messages

    def reset(self):
        self.messages.clear()
        self.touch()
        logger.info(f"[{self.session_id}] Conversation history cleared")

    def touch(self):
        self.last_activity_time = time.monotonic()

    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_activity_time

    def __len__(self) -> int:
        return len(self.messages)


class ConversationStore:
    """Conversations keyed by session id, each with its own lock.

    Callers hold ``lock(session_id)`` while processing a message so that a
    session sees at most one in-flight message at a time.
    """

    def __init__(self, system_prompt: str = ""):
        self.system_prompt = system_prompt
        self._conversations: Dict[str, Conversation] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, session_id: str) -> Conversation:
        conversation = self._conversations.get(session_id)
        if conversation is None:
            conversation = Conversation(session_id, self.system_prompt)
            self._conversations[session_id] = conversation
            logger.info(f"[{session_id}] New conversation")
        return conversation

    def lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def prune(self, max_idle: float) -> int:
        """Drop sessions idle longer than ``max_idle`` seconds; busy sessions are kept."""
        stale = [
            sid for sid, conv in self._conversations.items()
            if conv.idle_seconds() > max_idle and not self._is_busy(sid)
        ]
        for sid in stale:
            del self._conversations[sid]
            self._locks.pop(sid, None)
        if stale:
            logger.info(f"Pruned {len(stale)} idle conversation(s), {len(self._conversations)} left")
        return len(stale)

    def _is_busy(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)
