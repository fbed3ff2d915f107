"""Chat message and completion types (OpenAI-compatible wire shapes)."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from toolmesh.mcp.types import ToolCallResult
from toolmesh.types import MessageRole


@dataclass
class FunctionCall:
    """Function name plus raw JSON argument string chosen by the model."""

    name: str
    arguments: str = "{}"


@dataclass
class ToolCall:
    """Tool call requested by the model."""

    id: str
    function: FunctionCall
    type: str = "function"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        function = data.get("function") or {}
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        elif not isinstance(arguments, str):
            # Some providers send already-decoded arguments
            arguments = json.dumps(arguments)
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", "function"),
            function=FunctionCall(name=str(function.get("name", "")), arguments=arguments),
        )


@dataclass
class Message:
    """One transcript entry."""

    role: MessageRole
    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str | None, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, tool_call_id: str, content: str, name: str | None = None) -> "Message":
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id, name=name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize in chat-completions request form."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        content = data.get("content")
        if isinstance(content, list):
            # Content-part arrays: keep the text parts
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        return cls(
            role=MessageRole(data.get("role", "assistant")),
            content=content,
            tool_calls=[ToolCall.from_dict(c) for c in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
        )


@dataclass
class Choice:
    """One completion choice."""

    message: Message
    index: int = 0
    finish_reason: str | None = None


@dataclass
class CompletionResponse:
    """Chat-completions response."""

    choices: list[Choice]
    model: str | None = None
    id: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> Message:
        """First choice's message (empty assistant message if none)."""
        if not self.choices:
            return Message.assistant("")
        return self.choices[0].message

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompletionResponse":
        choices = [
            Choice(
                message=Message.from_dict(choice.get("message") or {}),
                index=choice.get("index", i),
                finish_reason=choice.get("finish_reason"),
            )
            for i, choice in enumerate(data.get("choices") or [])
        ]
        return cls(
            choices=choices,
            model=data.get("model"),
            id=data.get("id"),
            usage=data.get("usage") or {},
        )


@dataclass
class Session:
    """Chat session transcript."""

    id: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class ToolInvocation:
    """One executed tool call inside a turn."""

    call_id: str
    qualified_name: str
    arguments: dict[str, Any]
    result: ToolCallResult
    round: int

    @property
    def ok(self) -> bool:
        return self.result.ok


@dataclass
class ChatTurnResult:
    """Outcome of one user turn."""

    session_id: str
    message: Message
    rounds: int = 0
    invocations: list[ToolInvocation] = field(default_factory=list)
    truncated: bool = False
    error: str | None = None
    error_code: str | None = None
    history: list[Message] | None = None

    @property
    def content(self) -> str:
        return self.message.content or ""
