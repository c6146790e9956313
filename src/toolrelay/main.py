"""
toolrelay - Main Entry Point.

Reads one question from the command line (or stdin), runs it through the
conversation orchestrator with the built-in tools, and prints the model's
final answer.

Architecture:
    - config.py: Configuration management
    - conversation/providers.py: Chat transport
    - conversation/tools/: Tool registry and built-in tools
    - conversation/dispatcher.py: Tool dispatch
    - conversation/loop.py: Orchestration state machine
    - main.py: Entry point
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from toolrelay.config import ConfigError, Settings, get_settings
from toolrelay.conversation.dispatcher import ToolDispatcher
from toolrelay.conversation.loop import ConversationOrchestrator
from toolrelay.conversation.providers import OpenAICompatibleTransport, TransportError
from toolrelay.conversation.tools import build_default_registry

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings) -> ConversationOrchestrator:
    """Wire transport, registry and dispatcher from *settings*.

    Raises:
        ConfigError: If no API key is configured.
    """
    transport = OpenAICompatibleTransport.from_settings(settings)
    registry = build_default_registry(settings)
    return ConversationOrchestrator(
        transport=transport,
        registry=registry,
        dispatcher=ToolDispatcher(registry, timeout=settings.tool_timeout),
        max_tool_rounds=settings.max_tool_rounds,
    )


def cli_main(argv: list[str] | None = None) -> int:
    """Entry point for the toolrelay console script."""
    parser = argparse.ArgumentParser(
        description="Ask a question to a tool-calling LLM (Star Wars lookup and calculator)"
    )
    parser.add_argument(
        "--question",
        type=str,
        default=None,
        help="Question to ask (default: prompt on stdin)",
    )
    parser.add_argument("--model", type=str, default=None, help="Model identifier")
    parser.add_argument("--base-url", type=str, default=None, help="Chat endpoint base URL")
    parser.add_argument(
        "--max-tool-rounds",
        type=int,
        default=None,
        help="Maximum tool dispatch rounds per question (default: 1)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    settings = get_settings()

    # Override settings with CLI arguments if provided
    if args.model:
        settings.model = args.model
    if args.base_url:
        settings.base_url = args.base_url
    if args.max_tool_rounds is not None:
        settings.max_tool_rounds = args.max_tool_rounds
    if args.debug:
        settings.log_level = "DEBUG"

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        orchestrator = build_orchestrator(settings)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    question = args.question
    if question is None:
        print("Example: Ask about Star Wars (e.g., 'Tell me about Luke Skywalker')")
        question = input("Your question: ")

    try:
        response = asyncio.run(orchestrator.run(question))
    except TransportError as exc:
        logger.debug("Transport failure body: %s", exc.body)
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(f"\nFinal response: {response}")
    return 0


if __name__ == "__main__":
    sys.exit(cli_main())
