"""The "can I cook this?" flow that turns a shortfall into list items.

:class:`ClarificationFlow` is a small state machine driven by the UI:

    loading --check--> terminal_success ("ready for use")
            \\-------> needs_shortfall_review --confirm--> (agent round)
            \\-------> terminal_error
    (agent round) --ToolInvoked--> terminal_success
                  --NeedsClarification--> needs_user_context --answer--> (agent round)
                  --AgentFailed--> terminal_error

Each flow owns a fresh :class:`ConversationSession`; re-opening a recipe
means constructing a new flow.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from pantry_assistant.agent import (
    AgentFailed,
    NeedsClarification,
    ToolInvoked,
    compose_follow_up,
)
from pantry_assistant.errors import AssistantError, ErrorKind
from pantry_assistant.models import MissingReason
from pantry_assistant.prompt_loader import load_prompt
from pantry_assistant.session import ConversationSession

if TYPE_CHECKING:
    from pantry_assistant.agent import AgentOutcome, CommandAgent
    from pantry_assistant.matcher import IngredientMatcher
    from pantry_assistant.models import MissingItem, Recipe
    from pantry_assistant.pantry_store import PantryStore

logger = logging.getLogger(__name__)


class FlowState(StrEnum):
    """States of the clarification flow; exactly one is active."""

    LOADING = "loading"
    NEEDS_SHORTFALL_REVIEW = "needs_shortfall_review"
    NEEDS_USER_CONTEXT = "needs_user_context"
    TERMINAL_SUCCESS = "terminal_success"
    TERMINAL_ERROR = "terminal_error"


TERMINAL_STATES = frozenset({FlowState.TERMINAL_SUCCESS, FlowState.TERMINAL_ERROR})

READY_FOR_USE = "ready_for_use"
ITEMS_ADDED = "items_added"


class FlowStateError(Exception):
    """Raised when the UI drives the flow from the wrong state."""


def describe_shortfall(item: MissingItem) -> str:
    """Render one shortfall entry for the synthesized agent prompt."""
    if item.reason == MissingReason.MISSING:
        return f"{item.name} (missing)"
    return f"{item.name} (short by {item.shortfall})"


def build_shortfall_prompt(items: list[MissingItem]) -> str:
    """Build the user message asking the agent to add shortfall items.

    Args:
        items: Missing or insufficient ingredients.

    Returns:
        Prompt text for ``CommandAgent.submit``.
    """
    listed = ", ".join(describe_shortfall(item) for item in items)
    return load_prompt("shortfall_request", items=listed).strip()


class ClarificationFlow:
    """Drive one recipe from feasibility check to a terminal outcome.

    Args:
        owner_id: The user cooking the recipe.
        recipe: Recipe to check.
        matcher: Feasibility checker.
        agent: List agent used to add missing items.
        pantry_store: Source of the fresh pantry snapshot.
        max_rounds: Optional cap on agent rounds; None means unbounded.
    """

    def __init__(
        self,
        owner_id: str,
        recipe: Recipe,
        matcher: IngredientMatcher,
        agent: CommandAgent,
        pantry_store: PantryStore,
        max_rounds: int | None = None,
    ) -> None:
        """Initialize the flow in the ``loading`` state.

        Args:
            owner_id: The user cooking the recipe.
            recipe: Recipe to check.
            matcher: Feasibility checker.
            agent: List agent used to add missing items.
            pantry_store: Source of the fresh pantry snapshot.
            max_rounds: Optional cap on agent rounds; None means unbounded.
        """
        self.owner_id = owner_id
        self.recipe = recipe
        self._matcher = matcher
        self._agent = agent
        self._pantry = pantry_store
        self._max_rounds = max_rounds
        self.session = ConversationSession(owner_id=owner_id)

        self.state = FlowState.LOADING
        self.shortfall: list[MissingItem] = []
        self.question = ""
        self.message = ""
        self.outcome = ""
        self.error_kind: ErrorKind | None = None
        self.rounds = 0

    @property
    def is_terminal(self) -> bool:
        """True once the flow has reached success or error."""
        return self.state in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> FlowState:
        """Run the feasibility check (``loading`` state only).

        Returns:
            The new state.

        Raises:
            FlowStateError: If the flow has already started.
        """
        self._require(FlowState.LOADING)
        try:
            pantry = self._pantry.list_all(self.owner_id)
            verdict = self._matcher.check(self.recipe, pantry)
        except AssistantError as exc:
            logger.warning(
                "Feasibility check failed for %s: %s", self.recipe.name, exc.message
            )
            return self._to_error(exc.kind, exc.message)

        if verdict.can_cook:
            self.outcome = READY_FOR_USE
            self.message = f"You have all the ingredients for {self.recipe.name}!"
            self.state = FlowState.TERMINAL_SUCCESS
            return self.state

        self.shortfall = list(verdict.missing_or_insufficient)
        self.state = FlowState.NEEDS_SHORTFALL_REVIEW
        return self.state

    def confirm_add_to_list(self) -> FlowState:
        """Ask the agent to add the shortfall to the shopping list.

        Returns:
            The new state.

        Raises:
            FlowStateError: Unless the flow is in ``needs_shortfall_review``.
        """
        self._require(FlowState.NEEDS_SHORTFALL_REVIEW)
        return self._run_round(build_shortfall_prompt(self.shortfall))

    def answer(self, user_answer: str) -> FlowState:
        """Send the user's answer to the agent's last question.

        Args:
            user_answer: Free-text answer typed by the user.

        Returns:
            The new state.

        Raises:
            FlowStateError: Unless the flow is in ``needs_user_context``.
        """
        self._require(FlowState.NEEDS_USER_CONTEXT)
        return self._run_round(compose_follow_up(self.question, user_answer))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_round(self, prompt: str) -> FlowState:
        if self._max_rounds is not None and self.rounds >= self._max_rounds:
            return self._to_error(
                ErrorKind.ROUND_LIMIT,
                "The assistant still needs more information. "
                "Please add the remaining items manually.",
            )
        self.rounds += 1
        outcome: AgentOutcome = self._agent.submit(self.session, prompt)

        if isinstance(outcome, ToolInvoked):
            self.outcome = ITEMS_ADDED
            self.message = outcome.message
            self.question = ""
            self.state = FlowState.TERMINAL_SUCCESS
        elif isinstance(outcome, NeedsClarification):
            self.question = outcome.question
            self.state = FlowState.NEEDS_USER_CONTEXT
        elif isinstance(outcome, AgentFailed):
            self._to_error(outcome.kind, outcome.message)
        return self.state

    def _to_error(self, kind: ErrorKind, message: str) -> FlowState:
        self.error_kind = kind
        self.message = message
        self.question = ""
        self.state = FlowState.TERMINAL_ERROR
        return self.state

    def _require(self, expected: FlowState) -> None:
        if self.state != expected:
            raise FlowStateError(
                f"Cannot do that while the flow is {self.state.value}; "
                f"expected {expected.value}"
            )
