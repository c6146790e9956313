"""
toolrelay conversation package.

Implements the tool-calling orchestration loop: advertising tools to an
OpenAI-compatible chat endpoint, dispatching the tool calls it returns, and
sending the results back for a final answer.
"""

from toolrelay.conversation.messages import (
    AssistantMessage,
    ChatMessage,
    ConversationState,
    ToolCallRequest,
    ToolCallResult,
    ToolMessage,
    UserMessage,
)
from toolrelay.conversation.providers import (
    ChatResponse,
    ChatTransport,
    EmptyResponseError,
    MalformedResponseError,
    OpenAICompatibleTransport,
    ParameterSpec,
    ToolSpec,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
)
from toolrelay.conversation.arguments import ArgumentError, decode_arguments
from toolrelay.conversation.tools import (
    DuplicateToolError,
    ToolExecutionError,
    ToolRegistry,
    UnknownToolError,
    build_default_registry,
)
from toolrelay.conversation.dispatcher import ToolDispatcher
from toolrelay.conversation.loop import NO_RESPONSE_TEXT, ConversationOrchestrator, Phase

__all__ = [
    "NO_RESPONSE_TEXT",
    "ArgumentError",
    "AssistantMessage",
    "ChatMessage",
    "ChatResponse",
    "ChatTransport",
    "ConversationOrchestrator",
    "ConversationState",
    "DuplicateToolError",
    "EmptyResponseError",
    "MalformedResponseError",
    "OpenAICompatibleTransport",
    "ParameterSpec",
    "Phase",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDispatcher",
    "ToolExecutionError",
    "ToolMessage",
    "ToolRegistry",
    "ToolSpec",
    "TransportConnectionError",
    "TransportError",
    "TransportTimeoutError",
    "UnknownToolError",
    "UserMessage",
    "build_default_registry",
    "decode_arguments",
]
