"""Tool system — tool interface, concrete tools, registry, router, executor."""
from .base import Tool, ToolKind
from .browser import BrowserTool
from .github import RepositoryTool
from .search import SearchTool
from .registry import build_tools, describe_tools
from .router import ToolRouter
from .executor import execute_tool
