"""
Tool registry for the toolrelay orchestrator.

Provides ``ToolRegistry``, a name-keyed container of tool specs and their
async handlers.  The registry is populated once at process start and only
read afterwards, so a single instance can back many conversations.

Typical usage::

    from toolrelay.conversation.tools.registry import ToolRegistry
    from toolrelay.conversation.tools.calculator import CalculatorTool

    registry = ToolRegistry()
    calculator = CalculatorTool()
    registry.register(CalculatorTool.TOOL_SPEC, calculator.as_handler())

    entry = registry.lookup("calculate")
    result = await entry.handler({"operation": "add", "a": 1.0, "b": 2.0})
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, NamedTuple

from toolrelay.conversation.providers import ToolSpec

logger = logging.getLogger(__name__)

# Type alias for a single tool handler: async (args_dict) -> result_str
AsyncToolHandler = Callable[[dict[str, Any]], Awaitable[str]]


class DuplicateToolError(ValueError):
    """Raised when registering a tool whose name is already taken."""


class UnknownToolError(KeyError):
    """Raised when looking up a tool name that was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"


class ToolExecutionError(Exception):
    """Raised by a handler to report a tool-level failure to the model.

    The message is model-facing: it is delivered as the tool result text.
    """


class RegisteredTool(NamedTuple):
    spec: ToolSpec
    handler: AsyncToolHandler


class ToolRegistry:
    """Registry mapping tool names to their specs and async handlers.

    Attributes:
        _tools: Internal dict of registered tool entries, in registration
            order.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, spec: ToolSpec, handler: AsyncToolHandler) -> None:
        """Register a tool with its async handler.

        Args:
            spec: The tool's ``ToolSpec``.
            handler: Async callable ``(args: dict) -> str`` that executes
                the tool with decoded arguments.

        Raises:
            DuplicateToolError: If a tool with the same name is already
                registered.  The registry is left unchanged.
        """
        if spec.name in self._tools:
            raise DuplicateToolError(f"Tool {spec.name!r} is already registered.")
        self._tools[spec.name] = RegisteredTool(spec, handler)
        logger.debug("Registered tool: %r", spec.name)

    def lookup(self, name: str) -> RegisteredTool:
        """Return the spec and handler registered under *name*.

        Raises:
            UnknownToolError: If *name* is not registered.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def all_specs(self) -> list[ToolSpec]:
        """Return all registered ``ToolSpec`` objects (registration order)."""
        return [entry.spec for entry in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
