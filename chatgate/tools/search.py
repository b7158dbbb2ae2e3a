"""Web search tool — web, image and news search through the Brave Search MCP backend."""
import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..protocol import ToolRequest, ToolResponse
from .base import (
    BackendCallError, BackendClient, ToolKind,
    classify, compile_patterns, extract_first, matches_any, parse_payload, strip_punctuation,
)

logger = logging.getLogger(__name__)

DEFAULT_RESULT_COUNT = 5

_TRIGGERS = compile_patterns(
    r"\b(search|find|look up|google|search for)\s+(.+)",
    r"\b(what is|who is|tell me about)\s+(.+)",
    r"\bfind\s+news\s+about\s+(.+)",
    r"\bsearch\s+for\s+images\s+of\s+(.+)",
)

_IMAGES, _NEWS = compile_patterns(
    r"\bimages?\s+of\b",
    r"\b(news|articles|recent events)\s+about\b",
)
_SEARCH_TYPE_RULES = [(_IMAGES, "imageSearch"), (_NEWS, "newsSearch")]

# Most specific prefixes first; group 1 is the search term
_TERM_RULES = [(p, 1) for p in compile_patterns(
    r"\bsearch\s+for\s+images?\s+of\s+(.+)",
    r"\bfind\s+(?:news|articles)\s+about\s+(.+)",
    r"\bsearch\s+for\s+(.+)",
    r"\bsearch\s+(.+)",
    r"\bfind\s+(.+)",
    r"\blook\s+up\s+(.+)",
    r"\bgoogle\s+(.+)",
    r"\bwhat\s+is\s+(.+)",
    r"\bwho\s+is\s+(.+)",
    r"\btell\s+me\s+about\s+(.+)",
)]


def extract_search_query(query: str) -> str:
    term = extract_first(_TERM_RULES, query)
    if term:
        term = strip_punctuation(term)
    return term or query.strip()


def determine_search_type(query: str) -> str:
    return classify(_SEARCH_TYPE_RULES, query, "search")


# ── Backend payloads ──────────────────────────────────────────

class BraveSearchRequest(BaseModel):
    query: str
    type: str = "search"
    apiKey: str
    count: int = DEFAULT_RESULT_COUNT
    market: str = "en-US"
    safeSearch: str = "Moderate"


class WebPage(BaseModel):
    name: str = ""
    url: str
    title: str = ""
    snippet: str = ""
    last_crawled: Optional[str] = Field(default=None, alias="dateLastCrawled")


class ImageResult(BaseModel):
    url: str
    title: str = ""
    height: Optional[int] = None
    width: Optional[int] = None
    hostPageUrl: Optional[str] = None


class NewsResult(BaseModel):
    url: str
    title: str = ""
    description: str = ""
    source: str = ""
    published_time: Optional[str] = Field(default=None, alias="datePublished")


class BraveSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    webPages: Optional[List[WebPage]] = None
    images: Optional[List[ImageResult]] = None
    news: Optional[List[NewsResult]] = None
    relatedSearches: Optional[List[str]] = None
    type: Optional[str] = Field(default=None, alias="_type")


def format_search_results(results: BraveSearchResponse, search_type: str) -> Optional[str]:
    """Render results as a bulleted list; None when the backend found nothing."""
    lines: List[str] = []
    if search_type == "imageSearch":
        if not results.images:
            return None
        lines.append("Here are some image results:")
        for image in results.images:
            lines.append(f"- {image.title or image.url}: {image.url}")
    elif search_type == "newsSearch":
        if not results.news:
            return None
        lines.append("Here are some news results:")
        for item in results.news:
            source = f" ({item.source})" if item.source else ""
            lines.append(f"- {item.title}{source}: {item.url}")
            if item.published_time:
                lines.append(f"  Published: {item.published_time}")
            if item.description:
                lines.append(f"  {item.description}")
            lines.append("")
    else:
        if not results.webPages:
            return None
        lines.append("Here are search results:")
        for page in results.webPages:
            lines.append(f"- {page.title or page.name or page.url}")
            lines.append(f"  {page.url}")
            if page.snippet:
                lines.append(f"  {page.snippet}")
            lines.append("")
    return "\n".join(lines).rstrip()


class SearchTool:
    id = "brave-search"
    kind = ToolKind.BRAVE_SEARCH
    action_names = ("search", "imageSearch", "newsSearch")
    description = "Search the web, images or news and list the top results"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        count: int = DEFAULT_RESULT_COUNT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._count = count
        self._backend = BackendClient(base_url, "brave-search/execute", timeout=timeout, transport=transport)

    def can_handle(self, query: str) -> bool:
        return matches_any(_TRIGGERS, query)

    async def execute(self, request: ToolRequest) -> ToolResponse:
        search_type = determine_search_type(request.query)
        search_query = extract_search_query(request.query)
        context = request.context.with_parameters(action=search_type, query=search_query)

        body = BraveSearchRequest(
            query=search_query,
            type=search_type,
            apiKey=self._api_key,
            count=self._count,
        )

        try:
            data = await self._backend.post_json(body.model_dump())
            results = parse_payload(BraveSearchResponse, data)
        except BackendCallError as e:
            logger.error(f"Search '{search_query}' ({search_type}) failed: {e.message}")
            return ToolResponse.fail(
                f"Error searching for '{search_query}': {e.message}", e.detail, e.kind, context,
            )

        text = format_search_results(results, search_type)
        if text is None:
            return ToolResponse.ok(f"I searched for '{search_query}' but didn't find any results.", context)
        return ToolResponse.ok(text, context)
