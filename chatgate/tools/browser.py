"""Browser tool — visit pages, take screenshots and extract text via the Puppeteer MCP backend."""
import logging
import re
from typing import Dict, Optional

import httpx
from pydantic import BaseModel

from ..protocol import ErrorKind, ToolRequest, ToolResponse
from .base import (
    BackendCallError, BackendClient, ToolKind,
    classify, compile_patterns, extract_first, matches_any, parse_payload, strip_punctuation,
)

logger = logging.getLogger(__name__)

CONTENT_PREVIEW_CHARS = 500

_TRIGGERS = compile_patterns(
    r"\b(visit|browse|open|go to)\s+(website|webpage|site|url|page)\s+(.+)",
    r"\b(visit|browse|open|go to)\s+(.+\.(com|org|net|io|gov))",
    r"\b(take|get|capture)\s+(a\s+)?(screenshot|image|picture)\s+of\s+(.+)",
    r"\b(extract|get|read|scrape)\s+(text|content|data)\s+from\s+(.+)",
)

_SCREENSHOT, _EXTRACT, _CLICK, _FILL = compile_patterns(
    r"\b(screenshot|image|picture)\b",
    r"\b(extract|get|read|scrape)\s+(text|content|data)\b",
    r"\b(click|press|push)\s+(button|link)\b",
    r"\b(fill|complete|input|enter)\s+(form|data)\b",
)
_ACTION_RULES = [
    (_SCREENSHOT, "screenshot"),
    (_EXTRACT, "extractText"),
    (_CLICK, "clickButton"),
    (_FILL, "fillForm"),
]

# Bare or schemed host first, then whatever follows a visit verb
_URL_RULES = [
    (re.compile(
        r"(?:https?://)?(?:www\.)?[a-zA-Z0-9][-a-zA-Z0-9]*(?:\.[a-zA-Z0-9][-a-zA-Z0-9]*)+(?::\d+)?(?:/[^\s]*)?",
        re.IGNORECASE,
    ), 0),
    (re.compile(
        r"(?:visit|browse|open|go to)\s+(?:the\s+)?(?:website|webpage|site|url|page)?\s*(?:at\s+|for\s+)?"
        r"([^\s]+(?:\.[a-zA-Z]{2,})[^\s]*)",
        re.IGNORECASE,
    ), 1),
]

_SELECTOR_RULES = [(p, 1) for p in compile_patterns(
    r"(?:with|using)\s+selector\s+['\"](.+?)['\"]",
)]

_FORM_FIELD = re.compile(r"([\w-]+)\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s,]+)")
_FORM_SECTION = re.compile(r"\bwith\s+(.+)$", re.IGNORECASE)


def determine_action(query: str) -> str:
    return classify(_ACTION_RULES, query, "browse")


def extract_url(query: str) -> Optional[str]:
    url = extract_first(_URL_RULES, query)
    if not url:
        return None
    url = strip_punctuation(url)
    if not url.lower().startswith("http"):
        url = f"https://{url}"
    return url


def extract_selector(query: str) -> Optional[str]:
    return extract_first(_SELECTOR_RULES, query)


def extract_form_data(query: str) -> Optional[Dict[str, str]]:
    """``key=value`` pairs written after "with", e.g. ``fill form on x.com with name=Ann``."""
    section = _FORM_SECTION.search(query)
    if not section:
        return None
    fields = {k: v.strip("\"'") for k, v in _FORM_FIELD.findall(section.group(1))}
    return fields or None


# ── Backend payloads ──────────────────────────────────────────

class PuppeteerRequest(BaseModel):
    action: str
    url: str
    selector: Optional[str] = None
    formData: Optional[Dict[str, str]] = None
    waitTime: int = 5000
    waitForNavigation: bool = True
    fullPage: bool = True


class PuppeteerResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    content: Optional[str] = None
    screenshot: Optional[str] = None
    page_title: Optional[str] = None
    error: Optional[str] = None


def format_browser_result(result: PuppeteerResponse, action: str, url: str) -> str:
    message = result.message or ""
    if action == "screenshot":
        return f"I captured a screenshot of {url}. {message}".strip()
    if action == "extractText":
        content = result.content or ""
        if not content:
            return f"I visited {url} but no content could be extracted."
        if len(content) > CONTENT_PREVIEW_CHARS:
            content = content[:CONTENT_PREVIEW_CHARS] + "..."
        return f"Here's the content I extracted from {url}:\n\n{content}"
    if action == "clickButton":
        return f"I clicked the button on {url}. {message}".strip()
    if action == "fillForm":
        return f"I filled the form on {url}. {message}".strip()
    title = f" ({result.page_title})" if result.page_title else ""
    return f"I browsed {url}{title}. {message}".strip()


class BrowserTool:
    id = "puppeteer"
    kind = ToolKind.PUPPETEER
    action_names = ("browse", "screenshot", "extractText", "clickButton", "fillForm")
    description = "Open a web page to browse it, screenshot it, extract its text, click or fill forms"

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._backend = BackendClient(base_url, "puppeteer/execute", timeout=timeout, transport=transport)

    def can_handle(self, query: str) -> bool:
        return matches_any(_TRIGGERS, query)

    async def execute(self, request: ToolRequest) -> ToolResponse:
        action = determine_action(request.query)
        url = extract_url(request.query)
        context = request.context.with_parameters(action=action, url=url)

        if url is None:
            logger.info(f"Browser: no URL in query '{request.query}'")
            return ToolResponse.fail(
                "I couldn't determine which website you want me to visit. Please specify a URL.",
                "No URL specified",
                ErrorKind.MISSING_PARAMETER,
                context,
            )

        selector = extract_selector(request.query)
        form_data = extract_form_data(request.query) if action == "fillForm" else None
        body = PuppeteerRequest(action=action, url=url, selector=selector, formData=form_data)

        try:
            data = await self._backend.post_json(body.model_dump())
            result = parse_payload(PuppeteerResponse, data)
        except BackendCallError as e:
            logger.error(f"Browser {action} {url} failed: {e.message}")
            return ToolResponse.fail(f"Error browsing '{url}': {e.message}", e.detail, e.kind, context)

        if not result.success:
            cause = result.error or result.message or "the browser reported a failure"
            logger.warning(f"Browser {action} {url} unsuccessful: {cause}")
            return ToolResponse.fail(f"Error browsing '{url}': {cause}", cause, ErrorKind.BACKEND_ERROR, context)

        return ToolResponse.ok(format_browser_result(result, action, url), context)
