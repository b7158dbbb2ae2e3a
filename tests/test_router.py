"""Tests for tools/router.py — first-match-wins routing over registered tools."""
from unittest.mock import AsyncMock

import pytest

from chatgate.protocol import ErrorKind, NO_TOOL_ERROR_DETAIL, ToolResponse
from chatgate.tools import BrowserTool, RepositoryTool, SearchTool, ToolRouter
from chatgate.tools.base import Tool, ToolKind

from conftest import json_transport


class StubTool:
    def __init__(self, tool_id, keyword):
        self.id = tool_id
        self.kind = ToolKind.CUSTOM
        self.action_names = ("run",)
        self.description = f"stub for {keyword}"
        self.keyword = keyword
        self.execute = AsyncMock(return_value=ToolResponse.ok(f"{tool_id} done"))

    def can_handle(self, query):
        return self.keyword in query.lower()


def _default_tools(calls=None):
    transport = json_transport({"webPages": []}, calls=calls)
    return [
        RepositoryTool("http://github.local/", "gh-key", transport=transport),
        SearchTool("http://search.local/", "brave-key", transport=transport),
        BrowserTool("http://browser.local/", transport=transport),
    ]


class TestMatch:
    def test_no_tool_for_small_talk(self):
        router = ToolRouter(_default_tools())
        assert router.match("hello there, how are you") is None
        assert router.match("thanks!") is None
        assert router.match("get me the weekly report") is None
        assert router.match("show the reporting dashboard") is None

    def test_stub_tools_satisfy_protocol(self):
        assert isinstance(StubTool("a", "x"), Tool)
        for tool in _default_tools():
            assert isinstance(tool, Tool)

    def test_each_tool_claims_its_queries(self):
        router = ToolRouter(_default_tools())
        assert router.match("show my github repo").id == "github"
        assert router.match("search for rust programming language").id == "brave-search"
        assert router.match("visit example.com").id == "puppeteer"

    def test_case_insensitive(self):
        router = ToolRouter(_default_tools())
        assert router.match("SEARCH FOR Python").id == "brave-search"
        assert router.match("Visit Example.COM").id == "puppeteer"

    def test_registration_order_breaks_ties(self):
        first, second = StubTool("first", "weather"), StubTool("second", "weather")
        assert ToolRouter([first, second]).match("weather today").id == "first"
        assert ToolRouter([second, first]).match("weather today").id == "second"

    def test_tie_break_is_stable_across_calls(self):
        router = ToolRouter([StubTool("a", "x"), StubTool("b", "x"), StubTool("c", "y")])
        assert [router.match("x y").id for _ in range(5)] == ["a"] * 5
        assert router.match("y").id == "c"

    def test_github_registered_ahead_of_search(self):
        query = "search github for repository named chatgate"
        tools = _default_tools()
        assert tools[0].can_handle(query) and tools[1].can_handle(query)
        assert ToolRouter(tools).match(query).id == "github"
        assert ToolRouter([tools[1], tools[0]]).match(query).id == "brave-search"

    def test_empty_registry(self):
        assert ToolRouter([]).match("search for anything") is None


class TestDispatch:
    @pytest.mark.asyncio
    async def test_no_match_makes_no_network_call(self):
        calls = []
        router = ToolRouter(_default_tools(calls))
        response = await router.dispatch("good morning")
        assert response.is_error
        assert response.error_detail == NO_TOOL_ERROR_DETAIL
        assert response.error_kind == ErrorKind.NO_MATCHING_TOOL
        assert response.response_text
        assert calls == []

    @pytest.mark.asyncio
    async def test_dispatch_builds_fresh_context(self):
        tool = StubTool("stub", "ping")
        router = ToolRouter([tool])

        await router.dispatch("ping one")
        await router.dispatch("ping two")

        first = tool.execute.await_args_list[0].args[0]
        second = tool.execute.await_args_list[1].args[0]
        assert first.query == "ping one"
        assert first.context.tool_id == "stub"
        assert first.context.parameters == {}
        assert first.context.metadata["request_id"] != second.context.metadata["request_id"]

    @pytest.mark.asyncio
    async def test_only_matched_tool_executes(self):
        a, b = StubTool("a", "alpha"), StubTool("b", "beta")
        response = await ToolRouter([a, b]).dispatch("beta please")
        assert response.response_text == "b done"
        a.execute.assert_not_awaited()
        b.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tool_exception_becomes_failure(self):
        tool = StubTool("boom", "boom")
        tool.execute = AsyncMock(side_effect=RuntimeError("kaput"))
        response = await ToolRouter([tool]).dispatch("boom")
        assert response.is_error
        assert response.error_kind == ErrorKind.BACKEND_ERROR
        assert "kaput" in response.error_detail
        assert "boom" in response.response_text
