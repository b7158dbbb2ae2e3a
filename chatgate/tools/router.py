"""Rule-based tool router — first registered tool whose patterns match wins.

Order is the priority list: when several tools claim a query, the one
registered earliest handles it.
"""
import logging
import uuid
from typing import Optional, Sequence, Tuple

from ..protocol import RoutingContext, ToolRequest, ToolResponse, no_matching_tool
from .base import Tool
from .executor import execute_tool

logger = logging.getLogger(__name__)


class ToolRouter:
    def __init__(self, tools: Sequence[Tool]):
        self._tools: Tuple[Tool, ...] = tuple(tools)

    @property
    def tools(self) -> Tuple[Tool, ...]:
        return self._tools

    def match(self, query: str) -> Optional[Tool]:
        """First tool (in registration order) that can handle the query, or None."""
        for tool in self._tools:
            if tool.can_handle(query):
                logger.info(f"Router matched: '{query}' -> {tool.id}")
                return tool
        return None

    async def execute(self, tool: Tool, query: str) -> ToolResponse:
        """Run an already-matched tool on a fresh request."""
        request = ToolRequest(
            context=RoutingContext(
                tool_id=tool.id,
                metadata={"request_id": uuid.uuid4().hex[:8]},
            ),
            query=query,
        )
        return await execute_tool(tool, request)

    async def dispatch(self, query: str) -> ToolResponse:
        tool = self.match(query)
        if tool is None:
            logger.info(f"Router: no tool for '{query}'")
            return no_matching_tool()
        return await self.execute(tool, query)
