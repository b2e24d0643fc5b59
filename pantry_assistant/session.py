"""Per-interaction conversation transcripts.

A :class:`ConversationSession` is the only carrier of conversational
context. Each interaction creates its own session and drops it when the
interaction ends; nothing is shared between sessions or users.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from pantry_assistant.models import ConversationTurn, Role, ToolCall

_API_ROLES = {Role.USER: "user", Role.MODEL: "assistant"}


@dataclass
class ConversationSession:
    """An append-only transcript for one user interaction.

    Attributes:
        owner_id: The user this session acts for.
        session_id: Identifier callers use to address the session.
        turns: Transcript in the order it was produced.
    """

    owner_id: str
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    turns: list[ConversationTurn] = field(default_factory=list)

    def add_user_turn(self, text: str) -> ConversationTurn:
        """Append a user message."""
        turn = ConversationTurn(role=Role.USER, text=text)
        self.turns.append(turn)
        return turn

    def add_model_turn(
        self,
        text: str,
        tool_call: ToolCall | None = None,
        error_kind: str | None = None,
    ) -> ConversationTurn:
        """Append a model reply, tool-call summary, or error record."""
        turn = ConversationTurn(
            role=Role.MODEL,
            text=text,
            tool_call=tool_call,
            error_kind=error_kind,
        )
        self.turns.append(turn)
        return turn

    @property
    def last_turn(self) -> ConversationTurn | None:
        """The most recent turn, if any."""
        return self.turns[-1] if self.turns else None

    def to_messages(self) -> list[dict[str, Any]]:
        """Render the transcript as Anthropic ``messages``.

        A failed round is left out entirely: its error turn and the user
        turns it answered are never sent again. Tool-call turns are sent
        as their text summary. Consecutive turns with the same role are
        merged so the roles alternate as the API expects.

        Returns:
            List of ``{"role", "content"}`` message dicts.
        """
        kept: list[ConversationTurn] = []
        for turn in self.turns:
            if turn.error_kind is not None:
                while kept and kept[-1].role == Role.USER:
                    kept.pop()
                continue
            if turn.text:
                kept.append(turn)

        messages: list[dict[str, Any]] = []
        for turn in kept:
            role = _API_ROLES[turn.role]
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] += f"\n\n{turn.text}"
            else:
                messages.append({"role": role, "content": turn.text})
        # The API requires the conversation to open with a user message.
        while messages and messages[0]["role"] != "user":
            messages.pop(0)
        return messages
