"""toolmesh chat - tool-augmented conversation turns."""

from .formatting import render_result, to_function_tool, to_function_tools
from .gateway import LLMGateway, OpenAICompatibleGateway
from .orchestrator import ChatOrchestrator
from .session import InMemorySessionStore, SessionStore
from .types import (
    ChatTurnResult,
    Choice,
    CompletionResponse,
    FunctionCall,
    Message,
    Session,
    ToolCall,
    ToolInvocation,
)

__all__ = [
    # Orchestrator
    "ChatOrchestrator",
    # Gateway
    "LLMGateway",
    "OpenAICompatibleGateway",
    # Sessions
    "SessionStore",
    "InMemorySessionStore",
    # Formatting
    "to_function_tool",
    "to_function_tools",
    "render_result",
    # Types
    "Message",
    "ToolCall",
    "FunctionCall",
    "Choice",
    "CompletionResponse",
    "Session",
    "ToolInvocation",
    "ChatTurnResult",
]
