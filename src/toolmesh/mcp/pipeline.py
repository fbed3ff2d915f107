"""Timeout and retry helpers for remote tool server operations."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from toolmesh.errors import ToolmeshError, create_error, error_from_exception
from toolmesh.types import LogLevel, RetryConfig

T = TypeVar("T")


async def with_timeout(
    operation: Awaitable[T],
    timeout_ms: int,
    label: str,
    server_id: str | None = None,
) -> T:
    """Race an operation against a timer.

    A timeout only means the caller stopped waiting; the remote side may
    still have acted.

    Args:
        operation: Awaitable to run
        timeout_ms: Budget in milliseconds
        label: Operation name used in the error message
        server_id: Server the operation targets

    Returns:
        The operation's result, unchanged

    Raises:
        ToolmeshError(TIMEOUT): If the budget elapses first
    """
    # asyncio.timeout keeps the operation in the calling task, which the
    # MCP client's cancel scopes rely on
    try:
        async with asyncio.timeout(timeout_ms / 1000):
            return await operation
    except TimeoutError as e:
        raise create_error(
            "TIMEOUT",
            label=label,
            timeout_ms=timeout_ms,
            server_id=server_id or "?",
        ) from e


async def call_with_retry(
    operation_factory: Callable[[], Awaitable[T]],
    policy: RetryConfig,
    timeout_ms: int,
    label: str,
    server_id: str | None = None,
    tool_name: str | None = None,
    logger: Any = None,
) -> T:
    """Run an operation with a fresh timeout per attempt, retrying retryable errors.

    Args:
        operation_factory: Builds a new awaitable for each attempt
        policy: Attempt count and delay schedule
        timeout_ms: Budget for each individual attempt
        label: Operation name for errors and logs
        server_id: Server the operation targets
        tool_name: Tool being called, if any
        logger: Optional ToolmeshLogger

    Returns:
        Result of the first successful attempt

    Raises:
        ToolmeshError: The last classified error once attempts run out, or
            the first non-retryable one
    """
    max_attempts = max(policy.max_attempts, 1)
    attempt = 1
    while True:
        try:
            return await with_timeout(operation_factory(), timeout_ms, label, server_id)
        except ToolmeshError as e:
            original: Exception = e
            error = e.with_context(server_id=server_id, tool_name=tool_name)
        except Exception as e:
            original = e
            error = error_from_exception(e, server_id=server_id, tool_name=tool_name)

        if not error.retryable or attempt >= max_attempts:
            raise error from original

        delay = policy.delay_for(attempt)
        if logger:
            logger._log(
                LogLevel.WARN,
                f"connection.{server_id}" if server_id else "connection",
                f"{label} failed ({error.code}), retrying "
                f"(attempt {attempt + 1}/{max_attempts}, delay: {delay}s)",
            )
        attempt += 1
        await asyncio.sleep(delay)
