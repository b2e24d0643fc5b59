"""Configuration loading and validation for the pantry assistant.

Loads settings from .env via python-dotenv. Validates required vars
so the app fails fast with a clear error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from pantry_assistant.claude_utils import DEFAULT_MODEL

if TYPE_CHECKING:
    from pathlib import Path


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Config:
    """Typed, validated application configuration."""

    # Required for Claude API calls
    anthropic_api_key: str

    # Database
    database_path: str = "pantry.db"

    # Claude
    claude_model: str = DEFAULT_MODEL
    claude_max_tokens: int = 1024

    # Feasibility check: ingredients that never count as missing
    pantry_staples: tuple[str, ...] = ("water",)

    # Cap on agent rounds per clarification flow; 0 means unbounded
    max_clarification_rounds: int = 5

    # Flask
    flask_port: int = 5000
    flask_debug: bool = False

    @property
    def round_limit(self) -> int | None:
        """Clarification round cap as the flow expects it."""
        return self.max_clarification_rounds or None


def _int_setting(name: str, default: str) -> int:
    """Read an integer environment variable.

    Raises:
        ConfigError: If the value is not an integer.
    """
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as err:
        raise ConfigError(f"{name} must be an integer, got: {raw!r}") from err


def _parse_staples(raw: str) -> tuple[str, ...]:
    return tuple(s.strip().lower() for s in raw.split(",") if s.strip())


def load_config(env_path: str | Path | None = None) -> Config:
    """Load and validate configuration from environment / .env file.

    Args:
        env_path: Optional path to .env file. If None, searches from cwd upward.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If required configuration is missing or malformed.
    """
    load_dotenv(dotenv_path=env_path)

    anthropic_api_key = os.getenv("ANTHROPIC_API_KEY", "")
    if not anthropic_api_key:
        raise ConfigError(
            "ANTHROPIC_API_KEY is required. "
            "Copy .env.example to .env and fill in your key."
        )

    max_rounds = _int_setting("MAX_CLARIFICATION_ROUNDS", "5")
    if max_rounds < 0:
        raise ConfigError(
            f"MAX_CLARIFICATION_ROUNDS must be >= 0, got: {max_rounds}"
        )

    return Config(
        anthropic_api_key=anthropic_api_key,
        database_path=os.getenv("DATABASE_PATH", "pantry.db"),
        claude_model=os.getenv("CLAUDE_MODEL", DEFAULT_MODEL),
        claude_max_tokens=_int_setting("CLAUDE_MAX_TOKENS", "1024"),
        pantry_staples=_parse_staples(os.getenv("PANTRY_STAPLES", "water")),
        max_clarification_rounds=max_rounds,
        flask_port=_int_setting("FLASK_PORT", "5000"),
        flask_debug=os.getenv("FLASK_DEBUG", "false").lower() in ("true", "1", "yes"),
    )
