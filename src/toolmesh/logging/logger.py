"""toolmesh logger - component-scoped colored or JSON logging."""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from toolmesh.logging.colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from toolmesh.types import LogFormat, LogLevel

COMPONENTS = ("connection", "registry", "chat", "tool", "gateway")


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_params: bool = True
    show_results: bool = True
    truncate_at: int = 200
    components: dict[str, bool] = field(default_factory=dict)
    output: TextIO = field(default=sys.stderr)

    def __post_init__(self) -> None:
        """Initialize default components if not provided."""
        if not self.components:
            self.components = {name: True for name in COMPONENTS}


class ToolmeshLogger:
    """Main logger facade. Creates scoped loggers."""

    def __init__(self, config: LogConfig | None = None):
        """Initialize logger with configuration.

        Args:
            config: Logger configuration (defaults to LogConfig())
        """
        self.config = config or LogConfig()
        self._level_order = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }

    def turn(self, session_id: str) -> "TurnLogger":
        """Get a logger scoped to one chat turn.

        Args:
            session_id: Session the turn belongs to

        Returns:
            TurnLogger instance
        """
        return TurnLogger(self, session_id)

    def _should_log(self, level: LogLevel) -> bool:
        return self._level_order.get(level, 0) >= self._level_order.get(self.config.level, 1)

    def _log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Internal logging method.

        Args:
            level: Log level
            component: Component name; a dotted suffix (``connection.chain``)
                names the instance and is ignored for enable checks
            message: Log message
            context: Additional context data
        """
        if not self._should_log(level):
            return

        if not self.config.components.get(component.split(".", 1)[0], True):
            return

        if self.config.format == LogFormat.JSON:
            self._log_json(level, component, message, context)
        else:
            self._log_colored(level, component, message, context)

    def _log_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": level.value,
            "component": component,
            "message": message,
        }
        if context:
            log_entry.update(context)

        print(json.dumps(log_entry, default=str), file=self.config.output)

    def _log_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        level_colors = {
            LogLevel.DEBUG: LIGHT_BLUE,
            LogLevel.INFO: CYAN,
            LogLevel.WARN: YELLOW,
            LogLevel.ERROR: RED,
        }

        color = level_colors.get(level, RESET)
        component_color = {
            "connection": ORANGE,
            "registry": CYAN,
            "chat": MAGENTA,
            "tool": GREEN,
            "gateway": LIGHT_BLUE,
        }.get(component.split(".", 1)[0], RESET)

        # Format: [COMPONENT] message
        output = f"{component_color}[{component.upper()}]{RESET} {color}{message}{RESET}"

        if context and self.config.show_params:
            context_str = str(context)
            if len(context_str) > self.config.truncate_at:
                context_str = context_str[: self.config.truncate_at] + "..."
            output += f" {LIGHT_BLUE}{context_str}{RESET}"

        print(output, file=self.config.output)


class TurnLogger:
    """Logger for chat turn events."""

    def __init__(self, parent: ToolmeshLogger, session_id: str):
        self.parent = parent
        self.session_id = session_id

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        context: dict[str, Any] = {"session_id": self.session_id, "event": event}
        context.update(extra)
        return context

    def started(self, model: str, tool_count: int) -> None:
        """Log turn start.

        Args:
            model: Model the turn is sent to
            tool_count: Number of tools offered to the model
        """
        context = self._context("turn_started", model=model, tool_count=tool_count)
        message = f"Turn started (model: {model}, {tool_count} tools)"
        self.parent._log(LogLevel.INFO, "chat", message, context)

    def completed(self, duration_ms: int, rounds: int, tool_calls: int) -> None:
        """Log turn completion with summary.

        Args:
            duration_ms: Turn duration in milliseconds
            rounds: Tool rounds executed
            tool_calls: Tool calls executed across all rounds
        """
        context = self._context(
            "turn_completed", duration_ms=duration_ms, rounds=rounds, tool_calls=tool_calls
        )
        duration_s = duration_ms / 1000
        message = (
            f"Turn completed ({rounds} rounds, {tool_calls} tool calls, {duration_s:.2f}s) ✓"
        )
        self.parent._log(LogLevel.INFO, "chat", message, context)

    def round_limit(self, max_rounds: int) -> None:
        """Log that the tool round bound ended the turn."""
        context = self._context("turn_round_limit", max_rounds=max_rounds)
        message = f"Tool round limit reached ({max_rounds}), returning partial answer"
        self.parent._log(LogLevel.WARN, "chat", message, context)

    def failed(self, error: Exception, duration_ms: int) -> None:
        """Log turn failure.

        Args:
            error: Exception that aborted the turn
            duration_ms: Turn duration in milliseconds
        """
        context = self._context(
            "turn_failed",
            duration_ms=duration_ms,
            error=str(error),
            error_type=type(error).__name__,
        )
        message = f"Turn failed ({duration_ms / 1000:.2f}s): {error}"
        self.parent._log(LogLevel.ERROR, "chat", message, context)

    def round(self, number: int) -> "RoundLogger":
        """Get a logger scoped to one tool round."""
        return RoundLogger(self, number)


class RoundLogger:
    """Logger for one round of model-requested tool calls."""

    def __init__(self, parent: TurnLogger, number: int):
        self.parent = parent
        self.number = number

    def requested(self, tool_names: list[str]) -> None:
        """Log the tool calls the model requested this round."""
        context = self.parent._context(
            "round_requested", round=self.number, tool_calls=tool_names
        )
        message = f"Round {self.number}: model requested {len(tool_names)} tool call(s)"
        self.parent.parent._log(LogLevel.INFO, "chat", message, context)

    def tool(self) -> "ToolLogger":
        """Get a logger for tool calls within this round."""
        scope = {"session_id": self.parent.session_id, "round": self.number}
        return ToolLogger(self.parent.parent, scope)


class ToolLogger:
    """Logger for tool call events."""

    def __init__(self, root: ToolmeshLogger, scope: dict[str, Any] | None = None):
        """Initialize tool logger.

        Args:
            root: Root logger
            scope: Context added to every entry (session, round)
        """
        self.root = root
        self.scope = scope or {}

    def calling(self, tool_name: str, params: dict[str, Any] | None = None) -> None:
        """Log tool call start.

        Args:
            tool_name: Qualified name of the tool being called
            params: Optional tool arguments
        """
        context: dict[str, Any] = {**self.scope, "event": "tool_calling", "tool_name": tool_name}
        if params and self.root.config.show_params:
            context["params"] = params

        self.root._log(LogLevel.INFO, "tool", f"Calling tool '{tool_name}'", context)

    def result(self, tool_name: str, result: Any, duration_ms: int) -> None:
        """Log tool call result.

        Args:
            tool_name: Qualified name of the tool
            result: Tool result
            duration_ms: Execution duration in milliseconds
        """
        context: dict[str, Any] = {
            **self.scope,
            "event": "tool_result",
            "tool_name": tool_name,
            "duration_ms": duration_ms,
        }

        if self.root.config.show_results:
            result_str = str(result)
            if len(result_str) > self.root.config.truncate_at:
                result_str = result_str[: self.root.config.truncate_at] + "..."
            context["result"] = result_str

        message = f"Tool '{tool_name}' completed ({duration_ms / 1000:.2f}s) ✓"
        self.root._log(LogLevel.INFO, "tool", message, context)

    def error(self, tool_name: str, error: str, duration_ms: int) -> None:
        """Log tool call error.

        Args:
            tool_name: Qualified name of the tool
            error: Error message
            duration_ms: Execution duration in milliseconds
        """
        context = {
            **self.scope,
            "event": "tool_error",
            "tool_name": tool_name,
            "duration_ms": duration_ms,
            "error": error,
        }
        message = f"Tool '{tool_name}' failed ({duration_ms / 1000:.2f}s): {error}"
        self.root._log(LogLevel.ERROR, "tool", message, context)
