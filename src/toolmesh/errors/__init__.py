"""toolmesh error handling - Structured errors with context."""

from .errors import ErrorCategory, ErrorMatcher, ErrorTemplate, MatchResult, ToolmeshError
from .factory import ErrorFactory, create_error, error_from_exception, get_error_factory
from .matchers import ErrorMatcherChain, classify_message
from .registry import ErrorRegistry

__all__ = [
    # Core error types
    "ToolmeshError",
    "ErrorCategory",
    "ErrorTemplate",
    "MatchResult",
    # Registry and factory
    "ErrorRegistry",
    "ErrorFactory",
    "ErrorMatcherChain",
    "ErrorMatcher",
    # Convenience functions
    "get_error_factory",
    "create_error",
    "error_from_exception",
    "classify_message",
]
