"""Chat orchestrator - drives one tool-augmented user turn.

Per turn: Drafting -> AwaitingDecision -> (ExecutingTools -> AppendingResults
-> Drafting)* -> Done. Tool calls requested in one round run sequentially in
the order the model emitted them, and their results are appended in that
same order.
"""

import json
import time
from typing import Any

from toolmesh.config.models import ChatConfig
from toolmesh.errors import ToolmeshError
from toolmesh.logging.logger import RoundLogger, ToolLogger, ToolmeshLogger, TurnLogger
from toolmesh.mcp.naming import split_qualified_name
from toolmesh.mcp.registry import ServerRegistry
from toolmesh.mcp.types import ToolCallResult
from toolmesh.telemetry import MetricLabels, instrument_chat_turn
from toolmesh.types import ErrorKind, MessageRole

from .formatting import render_result, to_function_tools
from .gateway import LLMGateway
from .session import SessionStore
from .types import ChatTurnResult, Message, ToolCall, ToolInvocation

DEGRADED_MESSAGE = "Sorry, I ran into a problem while processing your request: {error}"
ROUND_LIMIT_MESSAGE = (
    "I stopped after {max_rounds} rounds of tool calls without reaching a final answer."
)


class ChatOrchestrator:
    """Runs chat turns against the registry's tool catalog."""

    def __init__(
        self,
        registry: ServerRegistry,
        gateway: LLMGateway,
        sessions: SessionStore,
        config: ChatConfig | None = None,
        logger: ToolmeshLogger | None = None,
    ):
        """Initialize orchestrator.

        Args:
            registry: Process-wide server registry
            gateway: LLM gateway
            sessions: Transcript store
            config: Chat configuration
            logger: Optional logger
        """
        self.registry = registry
        self.gateway = gateway
        self.sessions = sessions
        self.config = config or ChatConfig()
        self._logger = logger

    async def process_turn(
        self,
        message: str,
        session_id: str | None = None,
        system_prompt: str | None = None,
        enable_tools: bool = True,
        model: str | None = None,
        include_history: bool = False,
    ) -> ChatTurnResult:
        """Process one user message to a final assistant message.

        Never raises for tool or LLM failures: tool failures are fed back to
        the model, LLM failures produce a degraded assistant message.

        Args:
            message: User message
            session_id: Existing session; a new one is created if absent or unknown
            system_prompt: Prompt for a newly created session
            enable_tools: Offer the tool catalog to the model
            model: Model override (defaults to chat.default_model)
            include_history: Attach the full transcript to the result

        Returns:
            ChatTurnResult with the persisted final assistant message
        """
        session_id = await self._resolve_session(session_id, system_prompt)
        turn_log = self._logger.turn(session_id) if self._logger else None

        async with instrument_chat_turn(session_id) as span_result:
            result = await self._run_turn(
                session_id,
                message,
                system_prompt,
                enable_tools,
                model or self.config.default_model,
                turn_log,
            )
            span_result["rounds"] = result.rounds
            if result.error:
                span_result["status"] = MetricLabels.STATUS_ERROR
                span_result["error_code"] = result.error_code
            elif result.truncated:
                span_result["status"] = MetricLabels.STATUS_TRUNCATED

        if include_history:
            result.history = await self.sessions.get_history(session_id)
        return result

    async def _resolve_session(self, session_id: str | None, system_prompt: str | None) -> str:
        if session_id:
            session = await self.sessions.get_session(session_id)
            if session is not None:
                return session.id
        prompt = system_prompt or self.config.system_prompt
        session = await self.sessions.create_session(prompt)
        return session.id

    async def _run_turn(
        self,
        session_id: str,
        text: str,
        system_prompt: str | None,
        enable_tools: bool,
        model: str,
        turn_log: TurnLogger | None,
    ) -> ChatTurnResult:
        start_time = time.monotonic()
        history = await self.sessions.get_history(session_id)

        user_message = Message.user(text)
        await self.sessions.add_message(session_id, user_message)

        messages: list[Message] = []
        prompt = system_prompt or self.config.system_prompt
        if prompt and not any(m.role == MessageRole.SYSTEM for m in history):
            messages.append(Message.system(prompt))
        messages.extend(history)
        messages.append(user_message)

        tools = to_function_tools(self.registry.list_all_tools()) if enable_tools else []
        if turn_log:
            turn_log.started(model, len(tools))

        max_rounds = self.config.max_tool_rounds
        rounds = 0
        invocations: list[ToolInvocation] = []
        partial: str | None = None
        truncated = False
        error: str | None = None
        error_code: str | None = None

        try:
            while True:
                response = await self.gateway.complete(
                    model,
                    messages,
                    tools=tools or None,
                    tool_choice=self.config.tool_choice if tools else None,
                    temperature=self.config.temperature,
                )
                reply = response.message
                calls = reply.tool_calls if tools else []

                if not calls:
                    content = reply.content or ""
                    break

                if reply.content:
                    partial = reply.content

                if rounds >= max_rounds:
                    truncated = True
                    if turn_log:
                        turn_log.round_limit(max_rounds)
                    content = partial or ROUND_LIMIT_MESSAGE.format(max_rounds=max_rounds)
                    break

                rounds += 1
                round_log = turn_log.round(rounds) if turn_log else None
                if round_log:
                    round_log.requested([c.function.name for c in calls])

                assistant_message = Message.assistant(reply.content, calls)
                messages.append(assistant_message)
                await self._persist_tool_message(session_id, assistant_message)

                for call in calls:
                    invocation = await self._execute(call, rounds, round_log)
                    invocations.append(invocation)
                    tool_message = Message.tool(
                        call.id, render_result(invocation.result), name=call.function.name
                    )
                    messages.append(tool_message)
                    await self._persist_tool_message(session_id, tool_message)

        except Exception as e:
            # Gateway or session store failure; tool failures never reach here
            error = str(e) or type(e).__name__
            error_code = getattr(e, "code", None) or type(e).__name__
            content = DEGRADED_MESSAGE.format(error=error)
            if turn_log:
                turn_log.failed(e, int((time.monotonic() - start_time) * 1000))

        final_message = Message.assistant(content)
        await self.sessions.add_message(session_id, final_message)

        if turn_log and error is None:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            turn_log.completed(duration_ms, rounds, len(invocations))

        return ChatTurnResult(
            session_id=session_id,
            message=final_message,
            rounds=rounds,
            invocations=invocations,
            truncated=truncated,
            error=error,
            error_code=error_code,
        )

    async def _persist_tool_message(self, session_id: str, message: Message) -> None:
        if self.config.persist_tool_messages:
            await self.sessions.add_message(session_id, message)

    async def _execute(
        self, call: ToolCall, round_number: int, round_log: RoundLogger | None
    ) -> ToolInvocation:
        """Parse one call's arguments and dispatch it. Never raises."""
        name = call.function.name
        parts = split_qualified_name(name)
        server_id, tool_name = parts if parts else ("", name)
        tool_log = round_log.tool() if round_log else None

        arguments: Any
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            result = ToolCallResult.failure(
                tool_name,
                server_id,
                {},
                ErrorKind.INVALID_ARGS,
                f"Could not parse arguments as JSON: {e.msg} (at position {e.pos})",
            )
            return self._finish(call, {}, result, round_number, tool_log)

        if not isinstance(arguments, dict):
            result = ToolCallResult.failure(
                tool_name,
                server_id,
                {},
                ErrorKind.INVALID_ARGS,
                f"Arguments must be a JSON object, got {type(arguments).__name__}",
            )
            return self._finish(call, {}, result, round_number, tool_log)

        if tool_log:
            tool_log.calling(name, arguments)

        try:
            result = await self.registry.dispatch(name, arguments)
        except ToolmeshError as e:
            result = ToolCallResult.failure(tool_name, server_id, arguments, e.kind, str(e))

        return self._finish(call, arguments, result, round_number, tool_log)

    def _finish(
        self,
        call: ToolCall,
        arguments: dict[str, Any],
        result: ToolCallResult,
        round_number: int,
        tool_log: ToolLogger | None,
    ) -> ToolInvocation:
        if tool_log:
            if result.error is not None:
                tool_log.error(call.function.name, result.error.message, result.duration_ms)
            else:
                tool_log.result(call.function.name, render_result(result), result.duration_ms)
        return ToolInvocation(
            call_id=call.id,
            qualified_name=call.function.name,
            arguments=arguments,
            result=result,
            round=round_number,
        )
