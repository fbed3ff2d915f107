"""Administrative surface models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from toolmesh.errors import ToolmeshError


class ServerSummary(BaseModel):
    """Registered server for list response."""

    id: str
    tool_count: int
    description: str | None = None


class ToolSummary(BaseModel):
    """Catalog entry for list response.

    ``input_schema`` serializes as ``schema`` (use ``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str | None = None
    full_name: str
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="schema")


class AddServerResponse(BaseModel):
    """Successful server registration."""

    server: str
    url: str
    description: str | None = None
    tools: list[ToolSummary]


class ToolCallResponse(BaseModel):
    """Direct tool call outcome (tool-level failures included)."""

    tool_name: str
    duration_ms: int
    ok: bool
    content: list[dict[str, Any]] = []
    error: dict[str, Any] | None = None


class ErrorDetail(BaseModel):
    """Error detail model (matches the error registry)."""

    code: str
    category: str
    message: str
    detail: str | None = None
    suggestion: str | None = None
    retryable: bool = False
    server_id: str | None = None
    tool_name: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail
    status: int = 500

    @classmethod
    def from_error(cls, error: ToolmeshError) -> "ErrorResponse":
        return cls(
            error=ErrorDetail(
                code=error.code,
                category=error.category.value,
                message=error.message,
                detail=error.detail,
                suggestion=error.suggestion,
                retryable=error.retryable,
                server_id=error.server_id,
                tool_name=error.tool_name,
            ),
            status=error.http_status,
        )
