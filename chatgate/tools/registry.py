"""Tool registry — builds the ordered tool list from settings.

Registration order is routing priority: the router picks the first tool
whose patterns claim a query, so the GitHub tool sits ahead of generic
search ("show my github repo" must not become a web search).
"""
import logging
from typing import List, Optional, Sequence

from ..config import Settings
from .base import Tool
from .browser import BrowserTool
from .github import RepositoryTool
from .search import SearchTool

logger = logging.getLogger(__name__)


def build_tools(config: Settings) -> List[Tool]:
    """Instantiate every tool whose backend URL is configured, in priority order."""
    tools: List[Tool] = []

    if config.github_mcp_url:
        tools.append(RepositoryTool(
            base_url=config.github_mcp_url,
            api_key=config.github_api_key,
            timeout=config.tool_timeout,
            default_user=config.github_default_user,
        ))

    if config.brave_search_mcp_url:
        tools.append(SearchTool(
            base_url=config.brave_search_mcp_url,
            api_key=config.brave_search_api_key,
            timeout=config.tool_timeout,
        ))

    if config.puppeteer_mcp_url:
        tools.append(BrowserTool(
            base_url=config.puppeteer_mcp_url,
            timeout=config.browser_tool_timeout,
        ))

    for priority, tool in enumerate(tools):
        logger.info(f"Registered tool #{priority}: {tool.id} ({', '.join(tool.action_names)})")
    if not tools:
        logger.warning("No tool backends configured; every message goes straight to the model")
    return tools


def describe_tools(tools: Optional[Sequence[Tool]]) -> str:
    """Generate the tool list for the model's system prompt."""
    if not tools:
        return "- (no tools available)"
    lines = []
    for tool in tools:
        lines.append(f"- {tool.id}: {tool.description} | actions: {', '.join(tool.action_names)}")
    return "\n".join(lines)
