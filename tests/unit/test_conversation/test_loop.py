"""Unit tests for toolrelay.conversation.loop.ConversationOrchestrator."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolrelay.conversation.dispatcher import ToolDispatcher
from toolrelay.conversation.loop import NO_RESPONSE_TEXT, ConversationOrchestrator, Phase
from toolrelay.conversation.messages import (
    AssistantMessage,
    ToolCallRequest,
    ToolMessage,
    UserMessage,
)
from toolrelay.conversation.providers import (
    ChatResponse,
    EmptyResponseError,
    TransportError,
)
from toolrelay.conversation.tools.calculator import CalculatorTool
from toolrelay.conversation.tools.registry import ToolRegistry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _text_response(text: str | None) -> ChatResponse:
    """Build a ChatResponse that carries no tool calls."""
    return ChatResponse(message=AssistantMessage(content=text), finish_reason="stop")


def _tool_call_response(
    calls: list[tuple[str, str, dict[str, Any]]],
    content: str | None = None,
) -> ChatResponse:
    """Build a ChatResponse that requests tool calls.

    Args:
        calls: List of (id, name, arguments) tuples.
    """
    tool_calls = tuple(
        ToolCallRequest(id=id_, name=name, arguments=json.dumps(args))
        for id_, name, args in calls
    )
    return ChatResponse(
        message=AssistantMessage(content=content, tool_calls=tool_calls),
        finish_reason="tool_calls",
    )


def _make_transport(*outcomes: Any) -> MagicMock:
    """Return a mock ChatTransport that yields responses (or raises) in sequence."""
    mock = MagicMock()
    mock.send = AsyncMock(side_effect=list(outcomes))
    return mock


@pytest.fixture
def registry() -> ToolRegistry:
    reg = ToolRegistry()
    reg.register(CalculatorTool.TOOL_SPEC, CalculatorTool().as_handler())
    return reg


# ---------------------------------------------------------------------------
# Direct response (no tool calls)
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_run_returns_text_without_tools(registry: ToolRegistry) -> None:
    transport = _make_transport(_text_response("Paris is the capital of France."))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    result = await orchestrator.run("What is the capital of France?")

    assert result == "Paris is the capital of France."
    transport.send.assert_awaited_once()
    assert orchestrator.phase is Phase.DONE


@pytest.mark.anyio
async def test_first_request_offers_all_tools(registry: ToolRegistry) -> None:
    transport = _make_transport(_text_response("ok"))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    await orchestrator.run("Hi")

    messages, tools = transport.send.call_args[0]
    assert messages == (UserMessage("Hi"),)
    assert tools == (CalculatorTool.TOOL_SPEC,)


@pytest.mark.anyio
async def test_empty_registry_sends_no_tools() -> None:
    transport = _make_transport(_text_response("ok"))
    orchestrator = ConversationOrchestrator(transport=transport, registry=ToolRegistry())

    await orchestrator.run("Hi")

    _, tools = transport.send.call_args[0]
    assert tools is None


@pytest.mark.anyio
async def test_null_content_returns_empty_string(registry: ToolRegistry) -> None:
    transport = _make_transport(_text_response(None))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    assert await orchestrator.run("Hi") == ""


# ---------------------------------------------------------------------------
# Single tool round
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_run_dispatches_tool_and_sends_follow_up(registry: ToolRegistry) -> None:
    first = _tool_call_response(
        [("call_1", "calculate", {"operation": "divide", "a": 150, "b": 5})]
    )
    transport = _make_transport(first, _text_response("150 divided by 5 is 30."))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    result = await orchestrator.run("What is 150 divided by 5?")

    assert result == "150 divided by 5 is 30."
    assert transport.send.await_count == 2

    messages, tools = transport.send.call_args_list[1][0]
    assert tools is None
    assert messages == (
        UserMessage("What is 150 divided by 5?"),
        first.message,
        ToolMessage(tool_call_id="call_1", content="150.00 divide 5.00 = 30.00"),
    )


@pytest.mark.anyio
async def test_follow_up_keeps_assistant_message_with_null_content(
    registry: ToolRegistry,
) -> None:
    first = _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 2})])
    transport = _make_transport(first, _text_response("3"))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    await orchestrator.run("1+2?")

    messages, _ = transport.send.call_args_list[1][0]
    assistant_wire = messages[1].to_openai_format()
    assert assistant_wire["content"] is None
    assert assistant_wire["tool_calls"][0]["id"] == "c1"


@pytest.mark.anyio
async def test_division_by_zero_continues_conversation(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response([("c1", "calculate", {"operation": "divide", "a": 10, "b": 0})]),
        _text_response("You cannot divide by zero."),
    )
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    result = await orchestrator.run("10/0?")

    assert result == "You cannot divide by zero."
    messages, _ = transport.send.call_args_list[1][0]
    assert messages[-1] == ToolMessage(tool_call_id="c1", content="Error: Division by zero")


@pytest.mark.anyio
async def test_unknown_tool_is_reported_to_model(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response(
            [
                ("c1", "teleport", {"where": "Mars"}),
                ("c2", "calculate", {"operation": "add", "a": 2, "b": 2}),
            ]
        ),
        _text_response("I can't teleport, but 2+2=4."),
    )
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    result = await orchestrator.run("Teleport me and add 2+2")

    assert result == "I can't teleport, but 2+2=4."
    messages, _ = transport.send.call_args_list[1][0]
    assert messages[2:] == (
        ToolMessage(tool_call_id="c1", content="Error: Unknown tool: teleport"),
        ToolMessage(tool_call_id="c2", content="2.00 add 2.00 = 4.00"),
    )


@pytest.mark.anyio
async def test_uses_injected_dispatcher(registry: ToolRegistry) -> None:
    dispatcher = ToolDispatcher(registry)
    dispatcher.execute = AsyncMock(wraps=dispatcher.execute)  # type: ignore[method-assign]
    first = _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 1})])
    transport = _make_transport(first, _text_response("2"))
    orchestrator = ConversationOrchestrator(
        transport=transport, registry=registry, dispatcher=dispatcher
    )

    await orchestrator.run("1+1")

    dispatcher.execute.assert_awaited_once_with(first.message.tool_calls)


# ---------------------------------------------------------------------------
# Bounded tool rounds
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_second_tool_request_is_final_by_default(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 1})]),
        _tool_call_response(
            [("c2", "calculate", {"operation": "add", "a": 2, "b": 2})],
            content="Let me also check 2+2.",
        ),
    )
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    result = await orchestrator.run("Add things")

    assert result == "Let me also check 2+2."
    assert transport.send.await_count == 2


@pytest.mark.anyio
async def test_max_tool_rounds_allows_chaining(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 1})]),
        _tool_call_response([("c2", "calculate", {"operation": "multiply", "a": 2, "b": 3})]),
        _text_response("Done."),
    )
    orchestrator = ConversationOrchestrator(
        transport=transport, registry=registry, max_tool_rounds=3
    )

    result = await orchestrator.run("Chain")

    assert result == "Done."
    assert transport.send.await_count == 3
    messages, tools = transport.send.call_args_list[2][0]
    assert tools is None
    assert [type(m).__name__ for m in messages] == [
        "UserMessage",
        "AssistantMessage",
        "ToolMessage",
        "AssistantMessage",
        "ToolMessage",
    ]


@pytest.mark.anyio
async def test_zero_tool_rounds_never_dispatches(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 1})])
    )
    orchestrator = ConversationOrchestrator(
        transport=transport, registry=registry, max_tool_rounds=0
    )

    assert await orchestrator.run("1+1") == ""
    transport.send.assert_awaited_once()


def test_negative_tool_rounds_rejected(registry: ToolRegistry) -> None:
    with pytest.raises(ValueError, match="max_tool_rounds"):
        ConversationOrchestrator(
            transport=_make_transport(), registry=registry, max_tool_rounds=-1
        )


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_401_surfaces_transport_error_without_dispatch(registry: ToolRegistry) -> None:
    transport = _make_transport(
        TransportError("API Error: 401 - unauthorized", status_code=401, body="unauthorized")
    )
    dispatcher = MagicMock()
    dispatcher.execute = AsyncMock()
    orchestrator = ConversationOrchestrator(
        transport=transport, registry=registry, dispatcher=dispatcher
    )

    with pytest.raises(TransportError) as exc_info:
        await orchestrator.run("Hi")

    assert exc_info.value.status_code == 401
    transport.send.assert_awaited_once()
    dispatcher.execute.assert_not_awaited()


@pytest.mark.anyio
async def test_failure_on_follow_up_propagates(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 1})]),
        TransportError("API Error: 500 - oops", status_code=500),
    )
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    with pytest.raises(TransportError) as exc_info:
        await orchestrator.run("1+1")

    assert exc_info.value.status_code == 500


@pytest.mark.anyio
async def test_zero_choices_returns_user_visible_message(registry: ToolRegistry) -> None:
    transport = _make_transport(EmptyResponseError("No response from LLM", status_code=200))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    assert await orchestrator.run("Hi") == NO_RESPONSE_TEXT
    assert NO_RESPONSE_TEXT == "No response from LLM"
    assert orchestrator.phase is Phase.DONE


# ---------------------------------------------------------------------------
# State handling
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_sent_states_are_not_mutated(registry: ToolRegistry) -> None:
    transport = _make_transport(
        _tool_call_response([("c1", "calculate", {"operation": "add", "a": 1, "b": 1})]),
        _text_response("2"),
    )
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    await orchestrator.run("1+1")

    first_messages, first_tools = transport.send.call_args_list[0][0]
    assert first_messages == (UserMessage("1+1"),)
    assert first_tools == (CalculatorTool.TOOL_SPEC,)
    assert orchestrator.state is not None
    assert len(orchestrator.state.messages) == 3


@pytest.mark.anyio
async def test_orchestrator_can_be_reused_for_another_message(
    registry: ToolRegistry,
) -> None:
    transport = _make_transport(_text_response("first"), _text_response("second"))
    orchestrator = ConversationOrchestrator(transport=transport, registry=registry)

    assert await orchestrator.run("one") == "first"
    assert await orchestrator.run("two") == "second"

    messages, tools = transport.send.call_args_list[1][0]
    assert messages == (UserMessage("two"),)
    assert tools is not None
