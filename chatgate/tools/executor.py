"""Tool executor — runs one tool call with timing and a last-resort failure guard."""
import logging
import time

from ..protocol import ErrorKind, ToolRequest, ToolResponse
from .base import Tool

logger = logging.getLogger(__name__)


async def execute_tool(tool: Tool, request: ToolRequest) -> ToolResponse:
    """Execute ``request`` on ``tool``; never raises.

    Tools already convert backend failures into ToolResponses. Anything that
    still escapes is a bug in the tool and is reported the same way.
    """
    request_id = request.context.metadata.get("request_id", "-")
    logger.info(f"[{request_id}] Executing tool: {tool.id}('{request.query}')")
    t0 = time.monotonic()

    try:
        result = await tool.execute(request)
    except Exception as e:
        logger.error(f"[{request_id}] Tool {tool.id} failed: {e}", exc_info=True)
        result = ToolResponse.fail(
            f"I tried to use {tool.id} for you, but it failed unexpectedly.",
            f"{type(e).__name__}: {e}",
            ErrorKind.BACKEND_ERROR,
            request.context,
        )

    elapsed = time.monotonic() - t0
    outcome = f"error ({result.error_kind.value if result.error_kind else 'unknown'})" if result.is_error else "ok"
    params = ", ".join(f"{k}={v!r}" for k, v in (result.context.parameters if result.context else {}).items())
    logger.info(f"[{request_id}] Tool {tool.id}({params}): {elapsed:.1f}s -> {outcome}")
    return result
