"""toolmesh admin - server management surface."""

from .models import (
    AddServerResponse,
    ErrorDetail,
    ErrorResponse,
    ServerSummary,
    ToolCallResponse,
    ToolSummary,
)
from .service import AdminService

__all__ = [
    "AdminService",
    "AddServerResponse",
    "ErrorDetail",
    "ErrorResponse",
    "ServerSummary",
    "ToolCallResponse",
    "ToolSummary",
]
