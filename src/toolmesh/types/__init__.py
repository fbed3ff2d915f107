"""Shared types for toolmesh.

Import from here rather than submodules:
    from toolmesh.types import LogLevel, RetryConfig, ErrorKind
"""

from .config import RetryConfig
from .enums import (
    BackoffType,
    ConnectionState,
    ErrorKind,
    LogFormat,
    LogLevel,
    MessageRole,
)
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "BackoffType",
    "ConnectionState",
    "ErrorKind",
    "MessageRole",
    # Config
    "RetryConfig",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
