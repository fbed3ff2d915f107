"""Shared enumerations for toolmesh."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class BackoffType(str, Enum):
    """Retry backoff strategy."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class ConnectionState(str, Enum):
    """Tool server connection state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Classification of tool-calling failures."""

    TIMEOUT = "TIMEOUT"
    CONNECTION = "CONNECTION"
    SERVER_ERROR = "SERVER_ERROR"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    INVALID_ARGS = "INVALID_ARGS"
    DUPLICATE_SERVER = "DUPLICATE_SERVER"
    MALFORMED_TOOL_NAME = "MALFORMED_TOOL_NAME"
    SERVER_NOT_FOUND = "SERVER_NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class MessageRole(str, Enum):
    """Chat message role."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
