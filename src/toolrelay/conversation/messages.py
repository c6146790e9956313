"""
Conversation data model for the toolrelay orchestrator.

Messages are immutable and render themselves to the OpenAI chat-completions
wire format.  ``ConversationState`` is an append-only snapshot of the history
plus the tool set offered on the *next* request; follow-up requests are built
by deriving a new state, never by mutating one that has already been sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Union

if TYPE_CHECKING:
    from toolrelay.conversation.providers import ToolSpec


# ---------------------------------------------------------------------------
# Tool call request / result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the model.

    Attributes:
        id: Opaque call ID, unique within one assistant turn.
        name: Name of the tool to invoke.
        arguments: Raw argument payload exactly as received (normally a
            JSON-encoded string).  Validation happens in the dispatcher.
    """

    id: str
    name: str
    arguments: Any

    def to_openai_format(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class ToolCallResult:
    """Outcome of one dispatched tool call.

    Both success and error outcomes are delivered to the model as plain text;
    ``is_error`` lets calling code tell them apart.
    """

    tool_call_id: str
    content: str
    is_error: bool = False

    @classmethod
    def ok(cls, tool_call_id: str, content: str) -> ToolCallResult:
        return cls(tool_call_id=tool_call_id, content=content)

    @classmethod
    def error(cls, tool_call_id: str, content: str) -> ToolCallResult:
        return cls(tool_call_id=tool_call_id, content=content, is_error=True)

    def to_message(self) -> ToolMessage:
        return ToolMessage(tool_call_id=self.tool_call_id, content=self.content)


# ---------------------------------------------------------------------------
# Chat messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserMessage:
    content: str
    role: str = field(default="user", init=False)

    def to_openai_format(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class AssistantMessage:
    """An assistant turn: optional text plus zero or more pending tool calls.

    ``content`` may be ``None`` when tool calls are present; it is still sent
    back (as ``null``) on the follow-up request.
    """

    content: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    role: str = field(default="assistant", init=False)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_openai_format(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [tc.to_openai_format() for tc in self.tool_calls]
        return message


@dataclass(frozen=True)
class ToolMessage:
    tool_call_id: str
    content: str
    role: str = field(default="tool", init=False)

    def to_openai_format(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "tool_call_id": self.tool_call_id,
            "content": self.content,
        }


ChatMessage = Union[UserMessage, AssistantMessage, ToolMessage]


# ---------------------------------------------------------------------------
# Conversation state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConversationState:
    """Ordered message history plus the tools offered on the next request.

    Attributes:
        messages: The conversation so far, in order.
        tools: Tool specs to advertise on the next request, or ``None`` once
            tools have been offered and used.
    """

    messages: tuple[ChatMessage, ...]
    tools: tuple[ToolSpec, ...] | None = None

    @classmethod
    def start(
        cls,
        user_text: str,
        tools: Iterable[ToolSpec] | None = None,
    ) -> ConversationState:
        """Build the initial state: one user message and the full tool set."""
        specs = tuple(tools) if tools else ()
        return cls(messages=(UserMessage(user_text),), tools=specs or None)

    def follow_up(
        self,
        assistant: AssistantMessage,
        results: Iterable[ToolCallResult],
    ) -> ConversationState:
        """Derive the state for the request that carries tool results.

        The assistant message is appended exactly as received, followed by one
        tool message per result in the given order.  Tools are not re-offered.

        Raises:
            ValueError: If a result does not answer a call of *assistant*.
        """
        results = tuple(results)
        pending = {tc.id for tc in assistant.tool_calls}
        for result in results:
            if result.tool_call_id not in pending:
                raise ValueError(
                    f"Tool result {result.tool_call_id!r} does not match any "
                    "tool call of the preceding assistant turn."
                )
        tool_messages = tuple(result.to_message() for result in results)
        return ConversationState(
            messages=self.messages + (assistant,) + tool_messages,
            tools=None,
        )

    def to_openai_messages(self) -> list[dict[str, Any]]:
        return [message.to_openai_format() for message in self.messages]
