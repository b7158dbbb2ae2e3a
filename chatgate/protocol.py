"""Envelope shared by every tool: routing context, request, response."""
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class ErrorKind(str, Enum):
    NO_MATCHING_TOOL = "no_matching_tool"
    MISSING_PARAMETER = "missing_parameter"
    BACKEND_ERROR = "backend_error"
    MALFORMED_RESPONSE = "malformed_response"


class RoutingContext(BaseModel):
    tool_id: str
    parameters: Dict[str, str] = Field(default_factory=dict)
    metadata: Dict[str, str] = Field(default_factory=dict)

    def with_parameters(self, **params: Optional[str]) -> "RoutingContext":
        """Copy of this context with the given parameters merged in (None values skipped)."""
        merged = dict(self.parameters)
        merged.update({k: v for k, v in params.items() if v is not None})
        return self.model_copy(update={"parameters": merged})


class ToolRequest(BaseModel):
    context: RoutingContext
    query: str

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("query must not be empty")
        return v


class ToolResponse(BaseModel):
    """Result of one tool execution.

    Success leaves ``error_detail`` unset. Failure sets it, but
    ``response_text`` still holds a readable explanation for the user.
    """
    response_text: str
    context: Optional[RoutingContext] = None
    error_detail: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @field_validator("response_text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("response_text must not be empty")
        return v

    @property
    def is_error(self) -> bool:
        return self.error_detail is not None

    @classmethod
    def ok(cls, text: str, context: Optional[RoutingContext] = None) -> "ToolResponse":
        return cls(response_text=text, context=context)

    @classmethod
    def fail(
        cls,
        text: str,
        detail: str,
        kind: ErrorKind = ErrorKind.BACKEND_ERROR,
        context: Optional[RoutingContext] = None,
    ) -> "ToolResponse":
        return cls(response_text=text, error_detail=detail or kind.value, error_kind=kind, context=context)


NO_TOOL_RESPONSE_TEXT = "I don't have a tool to handle this request."
NO_TOOL_ERROR_DETAIL = "No matching tool found"


def no_matching_tool() -> ToolResponse:
    return ToolResponse.fail(NO_TOOL_RESPONSE_TEXT, NO_TOOL_ERROR_DETAIL, ErrorKind.NO_MATCHING_TOOL)


# ── Inbound HTTP API ──────────────────────────────────────────

class ChatRequest(BaseModel):
    message: str
    session_id: str = "default"

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be empty")
        return v.strip()


class ChatResponse(BaseModel):
    response: str


class ClearRequest(BaseModel):
    session_id: str = "default"
