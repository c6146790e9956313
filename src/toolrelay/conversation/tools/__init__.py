"""
Built-in tools for the toolrelay orchestrator.

Each tool module exposes:
- A tool class with the tool's implementation.
- A ``TOOL_SPEC`` attribute (``ToolSpec``) describing it to the model.
- An ``as_handler()`` method returning the async handler for ``ToolRegistry``.

Quick-start example::

    from toolrelay.conversation.tools import build_default_registry

    registry = build_default_registry()
    registry.all_specs()  # [search_starwars_character, calculate]
"""

from __future__ import annotations

from toolrelay.config import Settings
from toolrelay.conversation.tools.calculator import CalculatorTool
from toolrelay.conversation.tools.registry import (
    AsyncToolHandler,
    DuplicateToolError,
    RegisteredTool,
    ToolExecutionError,
    ToolRegistry,
    UnknownToolError,
)
from toolrelay.conversation.tools.starwars import StarWarsTool


def build_default_registry(settings: Settings | None = None) -> ToolRegistry:
    """Return a registry holding the Star Wars lookup and calculator tools."""
    registry = ToolRegistry()
    if settings is not None:
        starwars = StarWarsTool(base_url=settings.swapi_base_url)
    else:
        starwars = StarWarsTool()
    registry.register(StarWarsTool.TOOL_SPEC, starwars.as_handler())
    registry.register(CalculatorTool.TOOL_SPEC, CalculatorTool().as_handler())
    return registry


__all__ = [
    "AsyncToolHandler",
    "CalculatorTool",
    "DuplicateToolError",
    "RegisteredTool",
    "StarWarsTool",
    "ToolExecutionError",
    "ToolRegistry",
    "UnknownToolError",
    "build_default_registry",
]
