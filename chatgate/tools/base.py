"""Tool interface, pattern-matching helpers and the backend HTTP client.

Tools are plain classes that satisfy the ``Tool`` protocol; matching and
extraction go through the standalone helpers below rather than a shared base
class, so every tool keeps its own ordered rule lists.
"""
import logging
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Type, TypeVar, runtime_checkable

import httpx
from pydantic import BaseModel, ValidationError

from ..protocol import ErrorKind, ToolRequest, ToolResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class ToolKind(str, Enum):
    GITHUB = "github"
    BRAVE_SEARCH = "brave-search"
    PUPPETEER = "puppeteer"
    CUSTOM = "custom"  # tools registered from outside this package


@runtime_checkable
class Tool(Protocol):
    id: str
    kind: ToolKind
    action_names: Sequence[str]
    description: str

    def can_handle(self, query: str) -> bool:
        ...

    async def execute(self, request: ToolRequest) -> ToolResponse:
        ...


# ── Pattern helpers ───────────────────────────────────────────

def compile_patterns(*patterns: str) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def matches_any(patterns: Iterable[re.Pattern], text: str) -> bool:
    """True if any pattern matches anywhere in the lowercased text."""
    lowered = text.lower()
    return any(p.search(lowered) for p in patterns)


def classify(rules: Sequence[Tuple[re.Pattern, T]], text: str, default: T) -> T:
    """Label of the first rule whose pattern matches, else ``default``."""
    for pattern, label in rules:
        if pattern.search(text):
            return label
    return default


def extract_first(rules: Sequence[Tuple[re.Pattern, int]], text: str) -> Optional[str]:
    """Capture group of the first matching pattern (first match wins)."""
    for pattern, group in rules:
        m = pattern.search(text)
        if m and m.group(group):
            return m.group(group).strip()
    return None


def strip_punctuation(text: str) -> str:
    """Strip trailing punctuation from an extracted value."""
    return text.rstrip(".!?,;:'\")")


# ── Backend client ────────────────────────────────────────────

class BackendCallError(Exception):
    """Raised by BackendClient; tools convert it into a failure ToolResponse."""

    def __init__(self, kind: ErrorKind, message: str, detail: str = ""):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail or message


class BackendClient:
    """One JSON-over-HTTP endpoint of a tool backend.

    A fresh ``httpx.AsyncClient`` is opened per call; ``transport`` lets tests
    plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        path: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.path = path
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.path.lstrip('/')}"

    async def post_json(self, body: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json=body)
        except httpx.TimeoutException as e:
            logger.error(f"Backend timeout: {self.url} ({self.timeout:.0f}s)")
            raise BackendCallError(
                ErrorKind.BACKEND_ERROR, f"the request timed out after {self.timeout:.0f}s", repr(e),
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Backend unreachable: {self.url}: {type(e).__name__}: {e}")
            raise BackendCallError(
                ErrorKind.BACKEND_ERROR, f"could not reach the service ({type(e).__name__})", str(e) or repr(e),
            ) from e

        if not resp.is_success:
            logger.warning(f"Backend {self.url} -> HTTP {resp.status_code}")
            status = f"{resp.status_code} {resp.reason_phrase}".strip()
            raise BackendCallError(ErrorKind.BACKEND_ERROR, status, resp.text or status)

        try:
            return resp.json()
        except ValueError as e:
            logger.warning(f"Backend {self.url} returned invalid JSON")
            raise BackendCallError(ErrorKind.MALFORMED_RESPONSE, "the service returned an unreadable response", str(e)) from e


def parse_payload(model: Type[M], data: Any) -> M:
    """Validate a backend JSON body into the tool's result model."""
    if not isinstance(data, dict):
        raise BackendCallError(
            ErrorKind.MALFORMED_RESPONSE,
            "the service returned an unexpected response",
            f"expected a JSON object, got {type(data).__name__}",
        )
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise BackendCallError(ErrorKind.MALFORMED_RESPONSE, "the service returned an unexpected response", str(e)) from e


def bullet_lines(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)
