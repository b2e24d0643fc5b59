"""Conversational shopping-list agent.

:class:`CommandAgent` runs one round of a conversation: it records the
user's message, asks Claude (with the list_control tool available) what
to do, and either executes the resulting tool call or hands Claude's
question back to the caller. Each round makes exactly one Claude call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pantry_assistant.claude_utils import (
    DEFAULT_MODEL,
    create_message,
    parse_reply,
)
from pantry_assistant.errors import (
    ContractViolation,
    ErrorKind,
    ModelError,
    StorageError,
)
from pantry_assistant.models import Action
from pantry_assistant.prompt_loader import load_prompt
from pantry_assistant.tool_schema import LIST_CONTROL_TOOL, LIST_CONTROL_TOOL_NAME

if TYPE_CHECKING:
    from pantry_assistant.dispatcher import ActionDispatcher, DispatchResult
    from pantry_assistant.list_store import ListStore
    from pantry_assistant.models import ListItem
    from pantry_assistant.session import ConversationSession

logger = logging.getLogger(__name__)

_DEFAULT_MAX_TOKENS = 1024

_ACTION_VERBS = {
    Action.CREATE: "Added",
    Action.UPDATE: "Updated",
    Action.DELETE: "Removed",
}


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolInvoked:
    """Claude called list_control and the change was applied."""

    result: DispatchResult
    message: str


@dataclass(frozen=True)
class NeedsClarification:
    """Claude answered in text; the caller should show it and collect a reply."""

    question: str


@dataclass(frozen=True)
class AgentFailed:
    """The round failed; ``kind`` is for logs, ``message`` is for the user."""

    kind: ErrorKind
    message: str
    result: DispatchResult | None = None


AgentOutcome = ToolInvoked | NeedsClarification | AgentFailed


def compose_follow_up(question: str, answer: str) -> str:
    """Build the user message that answers a clarifying question.

    Args:
        question: The question Claude asked.
        answer: The user's free-text answer.

    Returns:
        Follow-up message for the next ``submit`` on the same session.
    """
    return f"{question}\n\nMy answer: {answer}"


def _format_item(item: ListItem) -> str:
    quantity = f"{item.quantity:g}"
    return f"{item.name} ({quantity} {item.unit.value})"


def summarize_result(result: DispatchResult) -> str:
    """Describe a dispatch result in one or two user-facing sentences.

    Args:
        result: The dispatcher's result.

    Returns:
        Readable summary of what changed or why nothing did.
    """
    if not result.success:
        text = f"Sorry, I couldn't update your list: {result.error_message}"
        if result.affected_items:
            text += (
                f" ({len(result.affected_items)} of {result.requested_count} "
                "item(s) were added before the error.)"
            )
        return text
    if not result.affected_items:
        return "I couldn't find any matching items on your list."
    verb = _ACTION_VERBS.get(result.action, "Changed") if result.action else "Changed"
    names = ", ".join(_format_item(item) for item in result.affected_items)
    return f"{verb} {len(result.affected_items)} item(s): {names}."


class CommandAgent:
    """Turn natural-language list commands into list_control executions.

    Args:
        anthropic_client: Anthropic API client (typed as Any).
        dispatcher: Executes validated list_control requests.
        list_store: Read access used to show Claude the current list.
        model: Claude model identifier.
        max_tokens: Response token cap per call.
    """

    def __init__(
        self,
        anthropic_client: Any,
        dispatcher: ActionDispatcher,
        list_store: ListStore,
        model: str = DEFAULT_MODEL,
        max_tokens: int = _DEFAULT_MAX_TOKENS,
    ) -> None:
        """Initialize the agent with its collaborators.

        Args:
            anthropic_client: Anthropic API client.
            dispatcher: Executes validated list_control requests.
            list_store: Read access used to show Claude the current list.
            model: Claude model identifier.
            max_tokens: Response token cap per call.
        """
        self._client = anthropic_client
        self._dispatcher = dispatcher
        self._store = list_store
        self._model = model
        self._max_tokens = max_tokens

    def submit(self, session: ConversationSession, user_text: str) -> AgentOutcome:
        """Run one conversation round on ``session``.

        Appends the user turn, makes a single Claude call, and appends
        exactly one model turn describing what happened.

        Args:
            session: The interaction's transcript; mutated in place.
            user_text: The user's message.

        Returns:
            ToolInvoked, NeedsClarification, or AgentFailed.
        """
        session.add_user_turn(user_text)

        try:
            response = create_message(
                self._client,
                model=self._model,
                max_tokens=self._max_tokens,
                system=self._build_system_prompt(session.owner_id),
                messages=session.to_messages(),
                tools=[LIST_CONTROL_TOOL],
            )
            reply = parse_reply(response)
            if reply.is_empty:
                raise ModelError("The assistant returned an empty reply.")
        except (ModelError, StorageError) as exc:
            return self._fail(session, exc.kind, exc.message)

        if not reply.tool_calls:
            session.add_model_turn(reply.text)
            return NeedsClarification(question=reply.text)

        tool_call = reply.tool_calls[0]
        if tool_call.name != LIST_CONTROL_TOOL_NAME:
            violation = ContractViolation(f"Unknown tool requested: {tool_call.name}")
            logger.error(violation.message)
            return self._fail(session, violation.kind, violation.message)

        result = self._dispatcher.execute(session.owner_id, tool_call.args)
        summary = summarize_result(result)
        if not result.success:
            session.add_model_turn(
                summary,
                tool_call=tool_call,
                error_kind=str(result.error_kind),
            )
            return AgentFailed(
                kind=result.error_kind or ErrorKind.CONTRACT,
                message=summary,
                result=result,
            )

        session.add_model_turn(summary, tool_call=tool_call)
        return ToolInvoked(result=result, message=summary)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fail(
        self,
        session: ConversationSession,
        kind: ErrorKind,
        message: str,
    ) -> AgentFailed:
        session.add_model_turn(message, error_kind=str(kind))
        return AgentFailed(kind=kind, message=message)

    def _build_system_prompt(self, owner_id: str) -> str:
        """Render the system prompt with the owner's current list.

        Args:
            owner_id: Identity of the list owner.

        Returns:
            Formatted system prompt.
        """
        items = self._store.list_items(owner_id, include_completed=False)
        return load_prompt(
            "list_agent_system",
            current_list=_format_current_list(items),
        )


def _format_current_list(items: list[ListItem]) -> str:
    """Format list rows for the system prompt, ids included.

    Args:
        items: The owner's open list rows.

    Returns:
        One line per row, or a placeholder for an empty list.
    """
    if not items:
        return "The list is empty."
    return "\n".join(
        f"- id: {item.id} | {_format_item(item)} | {item.category.value} | "
        f"{item.priority.value}"
        for item in items
    )
