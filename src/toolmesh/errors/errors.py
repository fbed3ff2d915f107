"""toolmesh error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from toolmesh.types import ErrorKind


class ErrorCategory(str, Enum):
    """Error source categories."""

    TOOL = "TOOL"
    SERVER = "SERVER"
    CHAT = "CHAT"
    VALIDATION = "VALIDATION"
    SYSTEM = "SYSTEM"


@dataclass
class ToolmeshError(Exception):
    """Structured error with context. Base exception for all toolmesh errors."""

    # Identity
    code: str  # e.g., "TIMEOUT", "SERVER_NOT_FOUND"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    retryable: bool = False
    http_status: int = 500
    server_id: str | None = None
    tool_name: str | None = None

    cause: "ToolmeshError | None" = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.detail and self.detail != self.message:
            return f"{self.message}: {self.detail}"
        return self.message

    @property
    def kind(self) -> ErrorKind:
        """Taxonomy kind for this error (UNKNOWN for non-taxonomy codes)."""
        try:
            return ErrorKind(self.code)
        except ValueError:
            return ErrorKind.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "retryable": self.retryable,
            "server_id": self.server_id,
            "tool_name": self.tool_name,
            "timestamp": self.timestamp.isoformat(),
            "cause": self.cause.to_dict() if self.cause else None,
        }

    def with_context(
        self,
        server_id: str | None = None,
        tool_name: str | None = None,
    ) -> "ToolmeshError":
        """Return copy with additional context.

        Args:
            server_id: Optional server identifier
            tool_name: Optional tool name

        Returns:
            New ToolmeshError instance with updated context
        """
        return ToolmeshError(
            code=self.code,
            category=self.category,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retryable=self.retryable,
            http_status=self.http_status,
            server_id=server_id or self.server_id,
            tool_name=tool_name or self.tool_name,
            cause=self.cause,
            timestamp=self.timestamp,
        )


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "Tool server '{server_id}' is unreachable"
    detail_template: str | None = None
    suggestion_template: str | None = None
    default_retryable: bool = False
    default_http_status: int = 500


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]
    retryable: bool | None = None  # None = use template default


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: BaseException) -> bool:
        """Check if this matcher handles the error."""

    @abstractmethod
    def extract(self, error: BaseException) -> MatchResult:
        """Extract error code and context from the exception."""
