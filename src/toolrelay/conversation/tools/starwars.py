"""
Star Wars character lookup tool for the toolrelay orchestrator.

Uses the public SWAPI (https://swapi.dev/), which requires no API key:

    ``GET https://swapi.dev/api/people/?search=<name>``

The first matching record is rendered as a short multi-line summary.  A
search with no results, or a non-200 status, is reported to the model as a
tool error.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from toolrelay.conversation.providers import ParameterSpec, ToolSpec
from toolrelay.conversation.tools.registry import AsyncToolHandler, ToolExecutionError

logger = logging.getLogger(__name__)

_DEFAULT_SWAPI_URL = "https://swapi.dev/api"

# (record field, label, unit suffix)
_CHARACTER_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("name", "Character", ""),
    ("height", "Height", " cm"),
    ("mass", "Mass", " kg"),
    ("hair_color", "Hair Color", ""),
    ("eye_color", "Eye Color", ""),
    ("birth_year", "Birth Year", ""),
    ("gender", "Gender", ""),
)


def format_character(record: dict[str, Any]) -> str:
    """Render a SWAPI people record as ``Label: value`` lines."""
    return "\n".join(
        f"{label}: {record.get(key, 'unknown')}{unit}"
        for key, label, unit in _CHARACTER_FIELDS
    )


class StarWarsTool:
    """Looks up a Star Wars character by name via SWAPI.

    Attributes:
        TOOL_SPEC: Ready-to-register ``ToolSpec``.
        base_url: SWAPI base URL.
        timeout: HTTP request timeout in seconds (default 10).
    """

    TOOL_SPEC: ToolSpec = ToolSpec(
        name="search_starwars_character",
        description=(
            "Search for a Star Wars character using the SWAPI (Star Wars API). "
            "Returns character details like height, mass, hair color, eye color, "
            "birth year, and gender."
        ),
        parameters={
            "name": ParameterSpec(
                type="string",
                description=(
                    "The name of the Star Wars character to search for "
                    "(e.g., 'Luke Skywalker', 'Darth Vader', 'Leia')"
                ),
            ),
        },
        required=frozenset({"name"}),
    )

    def __init__(self, base_url: str = _DEFAULT_SWAPI_URL, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def search(self, name: str) -> str:
        """Search SWAPI for *name* and describe the first match.

        Raises:
            ToolExecutionError: If the API answers with a non-200 status or
                no character matches.
            httpx.TimeoutException: If the request exceeds ``self.timeout``.
        """
        logger.info("Executing tool: search_starwars_character (%r)", name)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/people/",
                params={"search": name},
                headers={"Accept": "application/json"},
            )

        if response.status_code != 200:
            logger.warning("SWAPI returned status %d for %r", response.status_code, name)
            raise ToolExecutionError(f"API returned status {response.status_code}")

        results = response.json().get("results") or []
        if not results:
            raise ToolExecutionError(f"No character found with name: {name}")

        return format_character(results[0])

    def as_handler(self) -> AsyncToolHandler:
        """Return an async handler for ``ToolRegistry.register``."""

        async def _call(args: dict[str, Any]) -> str:
            return await self.search(args["name"])

        return _call
