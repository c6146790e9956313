"""
toolrelay - a tool-calling orchestrator for OpenAI-compatible chat endpoints.

The model is offered a set of locally implemented tools; when it asks for
them, toolrelay runs them and feeds the results back until the model
produces a final answer.

Quick Start:
    >>> from toolrelay import ConversationOrchestrator, OpenAICompatibleTransport
    >>> from toolrelay import build_default_registry, get_settings
    >>> settings = get_settings()
    >>> orchestrator = ConversationOrchestrator(
    ...     transport=OpenAICompatibleTransport.from_settings(settings),
    ...     registry=build_default_registry(settings),
    ... )
    >>> answer = await orchestrator.run("What is 150 divided by 5?")
"""

from toolrelay.config import ConfigError, Settings, get_settings
from toolrelay.conversation import (
    ConversationOrchestrator,
    OpenAICompatibleTransport,
    ToolRegistry,
    TransportError,
    build_default_registry,
)

__version__ = "0.1.0"
__all__ = [
    "ConfigError",
    "ConversationOrchestrator",
    "OpenAICompatibleTransport",
    "Settings",
    "ToolRegistry",
    "TransportError",
    "build_default_registry",
    "get_settings",
]
