"""Tests for conversation.py — per-session history and the conversation store."""
import pytest

from chatgate.conversation import MAX_HISTORY, Conversation, ConversationStore


class TestConversation:
    def test_history_starts_with_system_prompt(self):
        conv = Conversation("s", system_prompt="be nice")
        conv.append("user", "hi")
        assert conv.history() == [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "hi"},
        ]

    def test_no_system_prompt(self):
        conv = Conversation("s")
        conv.append("user", "hi")
        assert conv.history() == [{"role": "user", "content": "hi"}]

    def test_empty_content_ignored(self):
        conv = Conversation("s")
        conv.append("assistant", "")
        assert len(conv) == 0

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            Conversation("s").append("tool", "x")

    def test_truncation_keeps_system_prompt(self):
        conv = Conversation("s", system_prompt="sys")
        for i in range(MAX_HISTORY + 5):
            conv.append("user", f"msg {i}")
        assert len(conv) == MAX_HISTORY
        history = conv.history()
        assert history[0]["content"] == "sys"
        assert history[1]["content"] == "msg 5"
        assert history[-1]["content"] == f"msg {MAX_HISTORY + 4}"

    def test_reset(self):
        conv = Conversation("s", system_prompt="sys")
        conv.append("user", "hi")
        conv.reset()
        assert len(conv) == 0
        assert conv.history() == [{"role": "system", "content": "sys"}]


class TestConversationStore:
    def test_get_creates_once(self):
        store = ConversationStore("sys")
        first = store.get("a")
        assert store.get("a") is first
        assert first.system_prompt == "sys"
        assert "a" in store and "b" not in store

    def test_sessions_are_independent(self):
        store = ConversationStore()
        store.get("a").append("user", "for a")
        assert len(store.get("b")) == 0
        assert len(store) == 2

    def test_lock_per_session(self):
        store = ConversationStore()
        assert store.lock("a") is store.lock("a")
        assert store.lock("a") is not store.lock("b")


class TestSnapshot:
    def test_restore_after_truncation(self):
        conv = Conversation("s")
        for i in range(MAX_HISTORY):
            conv.append("user", f"msg {i}")
        saved = conv.snapshot()
        conv.append("user", "extra")
        conv.restore(saved)
        assert [m["content"] for m in conv.messages] == [f"msg {i}" for i in range(MAX_HISTORY)]


class TestPrune:
    def test_idle_sessions_dropped(self):
        store = ConversationStore()
        store.get("old").last_activity_time -= 120
        store.lock("old")
        store.get("fresh")

        assert store.prune(max_idle=60) == 1
        assert "old" not in store
        assert "fresh" in store
        assert "old" not in store._locks

    @pytest.mark.asyncio
    async def test_busy_session_kept(self):
        store = ConversationStore()
        store.get("busy").last_activity_time -= 120
        async with store.lock("busy"):
            assert store.prune(max_idle=60) == 0
            assert "busy" in store
        assert store.prune(max_idle=60) == 1

    def test_many_sessions_reclaimed(self):
        store = ConversationStore()
        for i in range(1000):
            store.get(f"s{i}").last_activity_time -= 120
            store.lock(f"s{i}")
        store.prune(max_idle=60)
        assert len(store) == 0
        assert store._locks == {}

    def test_pruned_session_starts_fresh(self):
        store = ConversationStore("sys")
        old = store.get("a")
        old.append("user", "hi")
        old.last_activity_time -= 120
        store.prune(max_idle=60)
        assert store.get("a") is not old
        assert len(store.get("a")) == 0
