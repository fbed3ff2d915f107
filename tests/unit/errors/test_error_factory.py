"""Unit tests for the error registry, matcher chain and factory."""

import asyncio

import httpx
import pytest
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData

from toolmesh.errors import (
    ErrorCategory,
    ErrorFactory,
    ErrorRegistry,
    ToolmeshError,
    classify_message,
    create_error,
    error_from_exception,
)
from toolmesh.types import ErrorKind


class TestErrorRegistry:
    """Tests for template-based error creation."""

    def test_every_taxonomy_kind_has_a_template(self):
        registry = ErrorRegistry()
        for kind in ErrorKind:
            assert registry.get_template(kind.value) is not None

    def test_list_codes_includes_ambient_codes(self):
        codes = ErrorRegistry().list_codes()
        for code in ("LLM_GATEWAY_FAILED", "SESSION_NOT_FOUND", "CONFIG_INVALID", "INTERNAL_ERROR"):
            assert code in codes

    def test_create_interpolates_context(self):
        error = ErrorRegistry().create(
            "TIMEOUT", {"label": "call 'gasPrice'", "timeout_ms": 200, "server_id": "chain"}
        )
        assert error.message == "call 'gasPrice' timed out after 200ms"
        assert error.detail == "No response from server 'chain' within the time budget"
        assert error.retryable is True
        assert error.http_status == 504
        assert error.server_id == "chain"

    def test_missing_message_placeholder_renders_question_mark(self):
        error = ErrorRegistry().create("SERVER_NOT_FOUND", {})
        assert error.message == "Server '?' not found"

    def test_missing_detail_placeholder_drops_detail(self):
        error = ErrorRegistry().create("CONNECTION", {"server_id": "chain"})
        assert error.detail is None
        assert str(error) == "Connection to server 'chain' failed"

    def test_unknown_code_raises(self):
        with pytest.raises(ValueError, match="Unknown error code"):
            ErrorRegistry().create("NOPE")


class TestToolmeshError:
    """Tests for ToolmeshError behavior."""

    def test_str_includes_detail(self):
        error = create_error("INVALID_ARGS", tool_name="gasPrice", detail="bad json")
        assert str(error) == "Invalid arguments for 'gasPrice': bad json"

    def test_kind_maps_taxonomy_codes(self):
        assert create_error("DUPLICATE_SERVER", server_id="a").kind == ErrorKind.DUPLICATE_SERVER

    def test_kind_is_unknown_for_non_taxonomy_codes(self):
        assert create_error("LLM_GATEWAY_FAILED", detail="x").kind == ErrorKind.UNKNOWN

    def test_to_dict(self):
        error = create_error("SERVER_NOT_FOUND", server_id="chain", tool_name="gasPrice")
        data = error.to_dict()
        assert data["code"] == "SERVER_NOT_FOUND"
        assert data["category"] == ErrorCategory.SERVER.value
        assert data["server_id"] == "chain"
        assert data["tool_name"] == "gasPrice"
        assert data["cause"] is None

    def test_with_context_keeps_identity(self):
        error = create_error("CONNECTION", server_id="a", detail="refused")
        copy = error.with_context(tool_name="t")
        assert copy.code == "CONNECTION"
        assert copy.server_id == "a"
        assert copy.tool_name == "t"
        assert copy.timestamp == error.timestamp

    def test_is_raisable(self):
        with pytest.raises(ToolmeshError) as exc_info:
            raise create_error("UNKNOWN", detail="boom")
        assert exc_info.value.message == "Unexpected error: boom"


class TestErrorClassification:
    """Tests for converting arbitrary exceptions."""

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (asyncio.TimeoutError(), "TIMEOUT"),
            (httpx.ReadTimeout("slow"), "TIMEOUT"),
            (ConnectionResetError("reset by peer"), "CONNECTION"),
            (ConnectionRefusedError(), "CONNECTION"),
            (httpx.ConnectError("nope"), "CONNECTION"),
            (EOFError(), "CONNECTION"),
            (OSError("network down"), "CONNECTION"),
            (McpError(ErrorData(code=INVALID_PARAMS, message="bad")), "INVALID_ARGS"),
            (McpError(ErrorData(code=METHOD_NOT_FOUND, message="nope")), "TOOL_NOT_FOUND"),
            (McpError(ErrorData(code=INTERNAL_ERROR, message="crash")), "SERVER_ERROR"),
            (RuntimeError("request timed out"), "TIMEOUT"),
            (RuntimeError("unknown tool: foo"), "TOOL_NOT_FOUND"),
            (ValueError("something odd"), "UNKNOWN"),
        ],
    )
    def test_classification(self, exc, code):
        assert error_from_exception(exc).code == code

    def test_retryability(self):
        assert error_from_exception(ConnectionResetError()).retryable is True
        assert error_from_exception(TimeoutError()).retryable is True
        assert error_from_exception(ValueError("odd")).retryable is False

    def test_context_is_attached(self):
        error = error_from_exception(ConnectionResetError(), server_id="a", tool_name="t")
        assert error.server_id == "a"
        assert error.tool_name == "t"

    def test_toolmesh_errors_pass_through(self):
        original = create_error("DUPLICATE_SERVER", server_id="a")
        assert ErrorFactory().from_exception(original).code == "DUPLICATE_SERVER"

    def test_classify_message_default(self):
        assert classify_message("weird", default="SERVER_ERROR") == "SERVER_ERROR"
        assert classify_message("Connection refused") == "CONNECTION"
        assert classify_message("missing parameter 'x'") == "INVALID_ARGS"

    @pytest.mark.parametrize(
        "message",
        ["invalid argument 'connection_id'", "argument 'connection' is required"],
    )
    def test_input_errors_win_over_connection_words(self, message):
        assert classify_message(message) == "INVALID_ARGS"
        assert error_from_exception(RuntimeError(message)).retryable is False
