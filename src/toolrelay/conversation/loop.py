"""
ConversationOrchestrator: the tool-calling state machine for toolrelay.

One call to ``run`` handles one user message:

1. **Initial**: send the user message together with every registered tool.
2. **AwaitingToolResults**: if the model asked for tools, dispatch them and
   send a follow-up request carrying the assistant turn and the tool results
   (tools are not re-offered).
3. **Done**: return the model's text.

The number of dispatch rounds is bounded by ``max_tool_rounds`` (default 1):
the response after the last allowed round is taken as final even if it asks
for more tools.
"""

from __future__ import annotations

import enum
import logging
import time

from toolrelay.conversation.dispatcher import ToolDispatcher
from toolrelay.conversation.messages import ConversationState
from toolrelay.conversation.providers import (
    NO_RESPONSE_TEXT,
    ChatResponse,
    ChatTransport,
    EmptyResponseError,
)
from toolrelay.conversation.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    INITIAL = "initial"
    AWAITING_TOOL_RESULTS = "awaiting_tool_results"
    DONE = "done"


class ConversationOrchestrator:
    """Drives one user message through the chat endpoint and local tools.

    Typical usage::

        orchestrator = ConversationOrchestrator(transport=transport, registry=registry)
        answer = await orchestrator.run("Tell me about Luke Skywalker")

    An instance serves one conversation at a time; the registry may be
    shared between instances.

    Attributes:
        transport: The chat endpoint (any ``ChatTransport`` implementation).
        registry: Tools offered to the model.
        dispatcher: Executes tool calls; defaults to a ``ToolDispatcher``
            over *registry*.
        max_tool_rounds: Maximum dispatch-and-resend cycles per message.
        phase: Current state of the most recent ``run``.
        state: The last ``ConversationState`` sent, or ``None``.
    """

    def __init__(
        self,
        transport: ChatTransport,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher | None = None,
        max_tool_rounds: int = 1,
    ) -> None:
        if max_tool_rounds < 0:
            raise ValueError("max_tool_rounds must be zero or a positive integer.")
        self.transport = transport
        self.registry = registry
        self.dispatcher = dispatcher or ToolDispatcher(registry)
        self.max_tool_rounds = max_tool_rounds
        self.phase = Phase.INITIAL
        self.state: ConversationState | None = None

    async def run(self, user_text: str) -> str:
        """Answer one user message, resolving tool calls along the way.

        Returns:
            The model's final text (empty if it sent none), or
            ``NO_RESPONSE_TEXT`` if the endpoint returned no choices.

        Raises:
            TransportError: If any request to the chat endpoint fails.
        """
        self.phase = Phase.INITIAL
        state = ConversationState.start(user_text, self.registry.all_specs())
        turn_start = time.monotonic()
        rounds = 0

        while True:
            try:
                response = await self._send(state)
            except EmptyResponseError:
                logger.warning("Chat endpoint returned no choices")
                self.phase = Phase.DONE
                return NO_RESPONSE_TEXT

            assistant = response.message
            if not assistant.has_tool_calls:
                break
            if rounds >= self.max_tool_rounds:
                logger.warning(
                    "Model requested %d more tool call(s) after %d round(s); "
                    "returning its text as final",
                    len(assistant.tool_calls),
                    rounds,
                )
                break

            self.phase = Phase.AWAITING_TOOL_RESULTS
            results = await self.dispatcher.execute(assistant.tool_calls)
            state = state.follow_up(assistant, results)
            rounds += 1

        self.phase = Phase.DONE
        logger.info(
            "Conversation complete after %d tool round(s) in %.3fs",
            rounds,
            time.monotonic() - turn_start,
        )
        return assistant.content or ""

    async def _send(self, state: ConversationState) -> ChatResponse:
        self.state = state
        t0 = time.monotonic()
        response = await self.transport.send(state.messages, state.tools)
        logger.debug(
            "Chat round took %.3fs (finish_reason=%s)",
            time.monotonic() - t0,
            response.finish_reason,
        )
        return response
