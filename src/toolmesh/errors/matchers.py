"""Error matchers for converting exceptions to ToolmeshErrors."""

import asyncio
import re
from typing import Any

import httpx
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND

from .errors import ErrorMatcher, MatchResult

# Whole-word rules for transports that only hand back a message. First match
# wins, and the non-retryable codes are checked before CONNECTION.
MESSAGE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(timeout|timed out)\b"), "TIMEOUT"),
    (re.compile(r"\b(not found|unknown tool|no such tool)\b"), "TOOL_NOT_FOUND"),
    (re.compile(r"\b(arguments?|parameters?|validation)\b"), "INVALID_ARGS"),
    (
        re.compile(r"\b(connect|connection|connected|refused|reset|unreachable)\b"),
        "CONNECTION",
    ),
    (re.compile(r"\b(server|internal)\b"), "SERVER_ERROR"),
]


def classify_message(message: str, default: str = "UNKNOWN") -> str:
    """Classify an error message by known words.

    Only affects diagnostics; callers never branch on anything but
    retryability.

    Args:
        message: Error text reported by a transport or server
        default: Code returned when nothing matches

    Returns:
        Error code
    """
    lowered = message.lower()
    for pattern, code in MESSAGE_RULES:
        if pattern.search(lowered):
            return code
    return default


class TimeoutErrorMatcher(ErrorMatcher):
    """Matches timeout errors."""

    def matches(self, error: BaseException) -> bool:
        return isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException))

    def extract(self, error: BaseException) -> MatchResult:
        return MatchResult(
            code="TIMEOUT",
            context={"label": "operation", "timeout_ms": "?", "detail": str(error)},
        )


class ConnectionErrorMatcher(ErrorMatcher):
    """Matches transport-level connection failures."""

    def matches(self, error: BaseException) -> bool:
        return isinstance(error, (ConnectionError, httpx.TransportError, EOFError))

    def extract(self, error: BaseException) -> MatchResult:
        return MatchResult(
            code="CONNECTION",
            context={"detail": str(error) or type(error).__name__},
        )


class McpErrorMatcher(ErrorMatcher):
    """Matches JSON-RPC errors returned by a tool server."""

    def matches(self, error: BaseException) -> bool:
        return isinstance(error, McpError)

    def extract(self, error: BaseException) -> MatchResult:
        data: Any = getattr(error, "error", None)
        code = getattr(data, "code", None)
        message = getattr(data, "message", None) or str(error)

        if code == INVALID_PARAMS:
            mapped = "INVALID_ARGS"
        elif code == METHOD_NOT_FOUND:
            mapped = "TOOL_NOT_FOUND"
        elif code == INTERNAL_ERROR:
            mapped = "SERVER_ERROR"
        else:
            mapped = classify_message(message, default="SERVER_ERROR")

        return MatchResult(code=mapped, context={"detail": message})


class OSErrorMatcher(ErrorMatcher):
    """Matches socket-level errors not covered by ConnectionError."""

    def matches(self, error: BaseException) -> bool:
        return isinstance(error, OSError)

    def extract(self, error: BaseException) -> MatchResult:
        return MatchResult(code="CONNECTION", context={"detail": str(error)})


class MessageHeuristicMatcher(ErrorMatcher):
    """Classifies by message text when the exception type says nothing."""

    def matches(self, error: BaseException) -> bool:
        return classify_message(str(error)) != "UNKNOWN"

    def extract(self, error: BaseException) -> MatchResult:
        message = str(error)
        code = classify_message(message)
        context: dict[str, Any] = {"detail": message}
        if code == "TIMEOUT":
            context.update(label="operation", timeout_ms="?")
        return MatchResult(code=code, context=context)


class GenericErrorMatcher(ErrorMatcher):
    """Fallback matcher for any exception."""

    def matches(self, error: BaseException) -> bool:
        return True

    def extract(self, error: BaseException) -> MatchResult:
        return MatchResult(
            code="UNKNOWN",
            context={
                "detail": str(error) or type(error).__name__,
                "error_type": type(error).__name__,
            },
            retryable=False,
        )


class ErrorMatcherChain:
    """Ordered chain of matchers. First match wins."""

    def __init__(self) -> None:
        """Initialize matcher chain with built-in matchers."""
        self.matchers: list[ErrorMatcher] = []
        self._load_builtin_matchers()

    def match(self, error: BaseException) -> MatchResult:
        """Find first matching matcher and extract result.

        Args:
            error: Exception to match

        Returns:
            MatchResult from first matching matcher
        """
        for matcher in self.matchers:
            if matcher.matches(error):
                return matcher.extract(error)

        # Unreachable while GenericErrorMatcher is last
        return MatchResult(code="UNKNOWN", context={"detail": str(error)}, retryable=False)

    def _load_builtin_matchers(self) -> None:
        """Load built-in matchers in priority order."""
        # Order matters - more specific matchers first
        self.matchers = [
            TimeoutErrorMatcher(),
            ConnectionErrorMatcher(),
            McpErrorMatcher(),
            OSErrorMatcher(),
            MessageHeuristicMatcher(),
            GenericErrorMatcher(),  # Fallback - must be last
        ]
