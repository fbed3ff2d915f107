"""LLM gateway - chat completions over an OpenAI-compatible HTTP API."""

from typing import Any, Protocol

import httpx

from toolmesh.config.models import LLMConfig
from toolmesh.errors import ToolmeshError, create_error
from toolmesh.logging.logger import ToolmeshLogger
from toolmesh.telemetry import instrument_completion
from toolmesh.types import LogLevel

from .types import CompletionResponse, Message


class LLMGateway(Protocol):
    """Anything that can produce a chat completion."""

    async def complete(
        self,
        model: str,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        temperature: float | None = None,
    ) -> CompletionResponse: ...


class OpenAICompatibleGateway:
    """Gateway for OpenRouter / OpenAI style ``/chat/completions`` endpoints."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        logger: ToolmeshLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize gateway.

        Args:
            config: Base URL, API key, timeout and extra headers
            logger: Optional logger
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.config = config or LLMConfig()
        self._logger = logger

        headers = {"Content-Type": "application/json", **self.config.headers}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            headers=headers,
            timeout=self.config.timeout_seconds,
            transport=transport,
        )

    def _log(self, level: LogLevel, message: str, context: dict[str, Any] | None = None) -> None:
        if self._logger:
            self._logger._log(level, "gateway", message, context)

    async def complete(
        self,
        model: str,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        temperature: float | None = None,
    ) -> CompletionResponse:
        """Request one non-streaming completion.

        Args:
            model: Model identifier
            messages: Transcript to send
            tools: Function tools offered to the model
            tool_choice: Tool choice mode (only sent with tools)
            temperature: Optional sampling temperature

        Returns:
            Parsed CompletionResponse

        Raises:
            ToolmeshError(LLM_GATEWAY_FAILED): Transport, HTTP or payload error
        """
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "stream": False,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice or "auto"
        if temperature is not None:
            payload["temperature"] = temperature

        self._log(
            LogLevel.DEBUG,
            f"Requesting completion from {model}",
            {"messages": len(messages), "tools": len(tools or [])},
        )

        async with instrument_completion(model):
            try:
                response = await self._client.post("/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                detail = f"HTTP {e.response.status_code}: {_error_text(e.response)}"
                raise self._failure(detail) from e
            except httpx.HTTPError as e:
                raise self._failure(f"{type(e).__name__}: {e}") from e
            except ValueError as e:
                raise self._failure(f"Invalid JSON in completion response: {e}") from e

            if not isinstance(data, dict):
                raise self._failure("Completion response is not an object")
            if data.get("error") and not data.get("choices"):
                raise self._failure(f"Provider error: {_error_message(data['error'])}")

            return CompletionResponse.from_dict(data)

    def _failure(self, detail: str) -> ToolmeshError:
        self._log(LogLevel.ERROR, f"Completion failed: {detail}")
        return create_error("LLM_GATEWAY_FAILED", detail=detail)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "error" in body:
        return _error_message(body["error"])
    return str(body)
