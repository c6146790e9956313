"""
Pytest configuration for the toolrelay test suite.

Async tests use the anyio plugin (``@pytest.mark.anyio``) on asyncio only:
the dispatcher relies on ``asyncio.gather`` / ``asyncio.wait_for``.
"""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep developer credentials and ``.env`` files out of the tests."""
    for var in (
        "TOOLRELAY_API_KEY",
        "OPENCODEZEN_API_KEY",
        "TOOLRELAY_BASE_URL",
        "TOOLRELAY_MODEL",
        "TOOLRELAY_MAX_TOOL_ROUNDS",
        "TOOLRELAY_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
