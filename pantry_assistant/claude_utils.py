"""Shared helpers for Claude API calls and response parsing.

Functions used by both the list agent and the feasibility check:
Anthropic client creation, a single-attempt ``messages.create`` wrapper
that maps transport failures to :class:`ModelError`, and content-block
parsing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import anthropic
import httpx

from pantry_assistant.errors import ModelError
from pantry_assistant.models import ToolCall

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

REQUEST_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


@dataclass
class ModelReply:
    """The parts of a Claude response the core cares about.

    Attributes:
        text: Concatenated text blocks, stripped.
        tool_calls: tool_use blocks in the order Claude emitted them.
    """

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when Claude returned neither text nor a tool call."""
        return not self.text and not self.tool_calls


def extract_json_text(raw: str) -> str:
    """Extract JSON from a Claude response, stripping markdown fences.

    Args:
        raw: Raw text from Claude's response.

    Returns:
        Cleaned string ready for JSON parsing.
    """
    text = raw.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1 :] if first_newline != -1 else ""
    if text.endswith("```"):
        text = text[: -len("```")]
    return text.strip()


def make_anthropic_client(api_key: str) -> object | None:
    """Create an Anthropic client from the given API key.

    The SDK's own retries are switched off, so every request reaches
    the API at most once.

    Args:
        api_key: Anthropic API key string.

    Returns:
        Anthropic client instance or None if it cannot be constructed.
    """
    try:
        return anthropic.Anthropic(
            api_key=api_key, max_retries=0, timeout=REQUEST_TIMEOUT
        )
    except Exception:
        logger.warning("Anthropic client unavailable; assistant features disabled")
        return None


def create_message(client: Any, **kwargs: Any) -> Any:
    """Call ``client.messages.create`` exactly once.

    There is no retry here either; see :func:`make_anthropic_client`.

    Args:
        client: Anthropic API client.
        **kwargs: Arguments forwarded to ``messages.create``.

    Returns:
        The raw Anthropic response.

    Raises:
        ModelError: On API, timeout, or connection failure, or when no
            client is configured.
    """
    if client is None:
        raise ModelError("No Claude client is configured")
    try:
        return client.messages.create(**kwargs)
    except anthropic.APITimeoutError as exc:
        logger.warning("Claude request timed out")
        raise ModelError("The assistant timed out. Please try again.") from exc
    except anthropic.APIError as exc:
        logger.warning("Claude request failed: %s", exc)
        raise ModelError(f"The assistant is unavailable: {exc}") from exc


def parse_reply(response: Any) -> ModelReply:
    """Split a Claude response into its text and tool_use parts.

    Args:
        response: Response returned by ``messages.create``.

    Returns:
        ModelReply with the joined text and any tool calls.
    """
    texts: list[str] = []
    tool_calls: list[ToolCall] = []
    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            texts.append(str(block.text))
        elif block_type == "tool_use":
            raw_input = block.input
            tool_calls.append(
                ToolCall(
                    name=str(block.name),
                    args=raw_input if isinstance(raw_input, dict) else {},
                )
            )
    return ModelReply(text="\n".join(t for t in texts if t).strip(), tool_calls=tool_calls)
