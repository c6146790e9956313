"""
Configuration management for toolrelay.

This module provides a Settings class that loads configuration from environment
variables (or a ``.env`` file), so the endpoint, model and credential can be
changed without code changes.  Settings are read once at process start and
passed explicitly to the components that need them.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when required configuration (e.g. the API key) is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Chat endpoint settings
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("TOOLRELAY_API_KEY", "OPENCODEZEN_API_KEY"),
    )
    base_url: str = "https://opencode.ai/zen/v1"
    model: str = "kimi-k2.5"
    request_timeout: float = 60.0

    # Orchestration settings
    max_tool_rounds: int = 1
    tool_timeout: float = 30.0

    # Example tool backends
    swapi_base_url: str = "https://swapi.dev/api"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="TOOLRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


def get_settings() -> Settings:
    """Get the application settings instance."""
    return Settings()


def require_api_key(settings: Settings) -> str:
    """Return the configured bearer token or raise ``ConfigError``."""
    api_key = (settings.api_key or "").strip()
    if not api_key:
        raise ConfigError(
            "Missing API key. Set TOOLRELAY_API_KEY (or OPENCODEZEN_API_KEY)."
        )
    return api_key
