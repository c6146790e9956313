"""
Tool dispatcher for the toolrelay orchestrator.

``ToolDispatcher.execute`` turns the tool calls of one assistant turn into
exactly one ``ToolCallResult`` per call.  Unknown tools, invalid arguments and
handler failures all become error-text results: nothing raised while running a
tool escapes this boundary, so one bad call never aborts its siblings or the
conversation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from toolrelay.conversation.arguments import ArgumentError, decode_arguments
from toolrelay.conversation.messages import ToolCallRequest, ToolCallResult
from toolrelay.conversation.tools.registry import (
    ToolExecutionError,
    ToolRegistry,
    UnknownToolError,
)

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """Resolves, validates and runs tool calls against a ``ToolRegistry``.

    Attributes:
        registry: The registry tool names are resolved against.
        timeout: Maximum seconds per tool call.  ``None`` disables the
            timeout.
    """

    def __init__(self, registry: ToolRegistry, timeout: float | None = 30.0) -> None:
        self.registry = registry
        self.timeout = timeout

    async def execute(self, requests: Sequence[ToolCallRequest]) -> list[ToolCallResult]:
        """Run every request and return one result per request.

        Calls run concurrently.  ``asyncio.gather`` returns outcomes in
        submission order, so the list follows request order and each result
        carries its own request's ID regardless of completion order.
        """
        t0 = time.monotonic()
        results = list(
            await asyncio.gather(*[self._run_one(request) for request in requests])
        )
        logger.debug(
            "Dispatched %d tool call(s) in %.3fs (%d error(s))",
            len(requests),
            time.monotonic() - t0,
            sum(result.is_error for result in results),
        )
        return results

    async def _run_one(self, request: ToolCallRequest) -> ToolCallResult:
        try:
            entry = self.registry.lookup(request.name)
        except UnknownToolError:
            logger.warning("Unknown tool requested: %r", request.name)
            return ToolCallResult.error(request.id, f"Error: Unknown tool: {request.name}")

        try:
            args = decode_arguments(entry.spec, request.arguments)
        except ArgumentError as exc:
            logger.warning("Invalid arguments for tool %r: %s", request.name, exc)
            return ToolCallResult.error(
                request.id, f"Error: Invalid arguments for {request.name}: {exc}"
            )
        except Exception as exc:
            logger.error(
                "Could not decode arguments for tool %r: %s", request.name, exc, exc_info=True
            )
            return ToolCallResult.error(
                request.id, f"Error: Invalid arguments for {request.name}: {exc}"
            )

        logger.debug("Dispatching tool: %s(%s)", request.name, args)
        try:
            if self.timeout is not None:
                content = await asyncio.wait_for(entry.handler(args), timeout=self.timeout)
            else:
                content = await entry.handler(args)
        except ToolExecutionError as exc:
            logger.info("Tool %r reported an error: %s", request.name, exc)
            return ToolCallResult.error(request.id, f"Error: {exc}")
        except asyncio.TimeoutError:
            logger.error("Tool %r timed out after %ss", request.name, self.timeout)
            return ToolCallResult.error(
                request.id, f"Error: Tool {request.name} timed out after {self.timeout}s"
            )
        except Exception as exc:
            logger.error("Tool %r failed: %s", request.name, exc, exc_info=True)
            return ToolCallResult.error(request.id, f"Error executing tool: {exc}")

        return ToolCallResult.ok(request.id, str(content))
