"""Error registry for creating errors from templates."""

from typing import Any

from .errors import ErrorCategory, ErrorTemplate, ToolmeshError


class _Placeholders(dict):
    """Interpolation context that renders missing keys as '?'."""

    def __missing__(self, key: str) -> str:
        return "?"


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, code: str) -> ErrorTemplate | None:
        """Get template by error code.

        Args:
            code: Error code to look up

        Returns:
            ErrorTemplate if found, None otherwise
        """
        return self._templates.get(code)

    def list_codes(self) -> list[str]:
        """List all registered error codes."""
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Register (or replace) a template."""
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        cause: ToolmeshError | None = None,
    ) -> ToolmeshError:
        """Create error instance from template + context.

        Args:
            code: Error code
            context: Context variables for template interpolation
            cause: Optional cause error

        Returns:
            ToolmeshError instance

        Raises:
            ValueError: If error code not found
        """
        template = self.get_template(code)
        if not template:
            msg = f"Unknown error code: {code}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, _Placeholders(context))
        detail = self._interpolate(template.detail_template, context)
        suggestion = self._interpolate(template.suggestion_template, context)

        if message is None:
            message = f"Error {code}"

        return ToolmeshError(
            code=template.code,
            category=template.category,
            message=message,
            detail=detail,
            suggestion=suggestion,
            retryable=template.default_retryable,
            http_status=template.default_http_status,
            server_id=context.get("server_id"),
            tool_name=context.get("tool_name"),
            cause=cause,
        )

    def _interpolate(
        self,
        template: str | None,
        context: dict[str, Any],
    ) -> str | None:
        """Safe string interpolation.

        Args:
            template: Template string with {var} placeholders
            context: Context variables

        Returns:
            Interpolated string or None if template is None
        """
        if template is None:
            return None

        try:
            return template.format_map(context)
        except (KeyError, IndexError):
            # Missing context variable - drop the optional text
            return None

    def _load_builtin_templates(self) -> None:
        """Load hardcoded built-in templates."""
        # Tool-call taxonomy
        self._templates["TIMEOUT"] = ErrorTemplate(
            code="TIMEOUT",
            category=ErrorCategory.TOOL,
            message_template="{label} timed out after {timeout_ms}ms",
            detail_template="No response from server '{server_id}' within the time budget",
            suggestion_template="The remote outcome is unknown; retry or raise the timeout",
            default_retryable=True,
            default_http_status=504,
        )

        self._templates["CONNECTION"] = ErrorTemplate(
            code="CONNECTION",
            category=ErrorCategory.SERVER,
            message_template="Connection to server '{server_id}' failed",
            detail_template="{detail}",
            suggestion_template="Check that the tool server is running and reachable",
            default_retryable=True,
            default_http_status=502,
        )

        self._templates["SERVER_ERROR"] = ErrorTemplate(
            code="SERVER_ERROR",
            category=ErrorCategory.SERVER,
            message_template="Server '{server_id}' reported an error",
            detail_template="{detail}",
            default_retryable=False,
            default_http_status=502,
        )

        self._templates["TOOL_NOT_FOUND"] = ErrorTemplate(
            code="TOOL_NOT_FOUND",
            category=ErrorCategory.TOOL,
            message_template="Tool '{tool_name}' not found on server '{server_id}'",
            suggestion_template="List the server's tools to see what is available",
            default_retryable=False,
            default_http_status=404,
        )

        self._templates["INVALID_ARGS"] = ErrorTemplate(
            code="INVALID_ARGS",
            category=ErrorCategory.VALIDATION,
            message_template="Invalid arguments for '{tool_name}'",
            detail_template="{detail}",
            suggestion_template="Arguments must be a JSON object matching the tool's input schema",
            default_retryable=False,
            default_http_status=400,
        )

        self._templates["DUPLICATE_SERVER"] = ErrorTemplate(
            code="DUPLICATE_SERVER",
            category=ErrorCategory.VALIDATION,
            message_template="Server '{server_id}' is already registered",
            suggestion_template="Remove the existing server first or pick another name",
            default_retryable=False,
            default_http_status=409,
        )

        self._templates["MALFORMED_TOOL_NAME"] = ErrorTemplate(
            code="MALFORMED_TOOL_NAME",
            category=ErrorCategory.VALIDATION,
            message_template="Malformed tool name '{tool_name}'",
            detail_template="Expected '<server>{separator}<tool>' with two non-empty parts",
            default_retryable=False,
            default_http_status=400,
        )

        self._templates["SERVER_NOT_FOUND"] = ErrorTemplate(
            code="SERVER_NOT_FOUND",
            category=ErrorCategory.SERVER,
            message_template="Server '{server_id}' not found",
            suggestion_template="Register the server before calling its tools",
            default_retryable=False,
            default_http_status=404,
        )

        self._templates["UNKNOWN"] = ErrorTemplate(
            code="UNKNOWN",
            category=ErrorCategory.SYSTEM,
            message_template="Unexpected error: {detail}",
            default_retryable=False,
            default_http_status=500,
        )

        # Chat and system errors
        self._templates["LLM_GATEWAY_FAILED"] = ErrorTemplate(
            code="LLM_GATEWAY_FAILED",
            category=ErrorCategory.CHAT,
            message_template="LLM completion failed",
            detail_template="{detail}",
            suggestion_template="Check the LLM gateway URL, API key and model name",
            default_retryable=True,
            default_http_status=502,
        )

        self._templates["SESSION_NOT_FOUND"] = ErrorTemplate(
            code="SESSION_NOT_FOUND",
            category=ErrorCategory.CHAT,
            message_template="Session '{session_id}' not found",
            default_retryable=False,
            default_http_status=404,
        )

        self._templates["CONFIG_INVALID"] = ErrorTemplate(
            code="CONFIG_INVALID",
            category=ErrorCategory.VALIDATION,
            message_template="Invalid configuration",
            detail_template="{detail}",
            suggestion_template="Fix the listed configuration errors and restart",
            default_retryable=False,
            default_http_status=400,
        )

        self._templates["INTERNAL_ERROR"] = ErrorTemplate(
            code="INTERNAL_ERROR",
            category=ErrorCategory.SYSTEM,
            message_template="Internal error",
            detail_template="{detail}",
            default_retryable=False,
            default_http_status=500,
        )
