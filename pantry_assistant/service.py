"""Caller-facing API for the list agent and the recipe flow.

:class:`PantryAssistant` wires the stores, dispatcher, agent, and matcher
together and gives the UI three entry points: free-form list commands,
feasibility checks, and the shortfall-resolution flow. Sessions and
flows live on the instance, keyed by owner so no user can reach
another's conversation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pantry_assistant.agent import (
    AgentFailed,
    CommandAgent,
    NeedsClarification,
    ToolInvoked,
)
from pantry_assistant.clarification import READY_FOR_USE, ClarificationFlow, FlowState
from pantry_assistant.dispatcher import ActionDispatcher
from pantry_assistant.list_store import ListStore
from pantry_assistant.matcher import IngredientMatcher
from pantry_assistant.pantry_store import PantryStore
from pantry_assistant.session import ConversationSession

if TYPE_CHECKING:
    from pantry_assistant.agent import AgentOutcome
    from pantry_assistant.config import Config
    from pantry_assistant.errors import ErrorKind
    from pantry_assistant.models import FeasibilityVerdict, Recipe

logger = logging.getLogger(__name__)


class ResponseStatus(StrEnum):
    """Top-level result of a caller-facing operation."""

    INVOKED = "invoked"
    NEEDS_CLARIFICATION = "needs_clarification"
    NEEDS_SHORTFALL_REVIEW = "needs_shortfall_review"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class CommandResponse:
    """What the UI shows after a command or flow step.

    Attributes:
        status: Result category.
        message: Text to show the user verbatim.
        kind: Machine-readable error kind when ``status`` is ERROR.
    """

    status: ResponseStatus
    message: str
    kind: ErrorKind | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Serialize for JSON responses."""
        return {
            "status": self.status.value,
            "message": self.message,
            "kind": self.kind.value if self.kind else None,
        }


def _response_from_outcome(outcome: AgentOutcome) -> CommandResponse:
    if isinstance(outcome, ToolInvoked):
        return CommandResponse(ResponseStatus.INVOKED, outcome.message)
    if isinstance(outcome, NeedsClarification):
        return CommandResponse(ResponseStatus.NEEDS_CLARIFICATION, outcome.question)
    if isinstance(outcome, AgentFailed):
        return CommandResponse(ResponseStatus.ERROR, outcome.message, outcome.kind)
    raise TypeError(f"Unexpected agent outcome: {outcome!r}")  # pragma: no cover


def _response_from_flow(flow: ClarificationFlow) -> CommandResponse:
    if flow.state == FlowState.TERMINAL_SUCCESS:
        status = (
            ResponseStatus.READY
            if flow.outcome == READY_FOR_USE
            else ResponseStatus.INVOKED
        )
        return CommandResponse(status, flow.message)
    if flow.state == FlowState.TERMINAL_ERROR:
        return CommandResponse(ResponseStatus.ERROR, flow.message, flow.error_kind)
    if flow.state == FlowState.NEEDS_USER_CONTEXT:
        return CommandResponse(ResponseStatus.NEEDS_CLARIFICATION, flow.question)
    names = ", ".join(item.name for item in flow.shortfall)
    return CommandResponse(
        ResponseStatus.NEEDS_SHORTFALL_REVIEW,
        f"You're missing some ingredients for {flow.recipe.name}: {names}.",
    )


class PantryAssistant:
    """Entry points the app calls for list commands and recipe checks.

    Args:
        list_store: Owner-scoped shopping list storage.
        pantry_store: Owner-scoped pantry storage.
        anthropic_client: Anthropic API client (typed as Any).
        config: Optional configuration for model and flow settings.
    """

    def __init__(
        self,
        list_store: ListStore,
        pantry_store: PantryStore,
        anthropic_client: Any,
        config: Config | None = None,
    ) -> None:
        """Wire the assistant's collaborators.

        Args:
            list_store: Owner-scoped shopping list storage.
            pantry_store: Owner-scoped pantry storage.
            anthropic_client: Anthropic API client.
            config: Optional configuration for model and flow settings.
        """
        self.list_store = list_store
        self.pantry_store = pantry_store
        agent_kwargs: dict[str, Any] = {}
        matcher_kwargs: dict[str, Any] = {}
        if config is not None:
            agent_kwargs = {
                "model": config.claude_model,
                "max_tokens": config.claude_max_tokens,
            }
            matcher_kwargs = {
                "model": config.claude_model,
                "staples": config.pantry_staples,
            }
        self._round_limit = config.round_limit if config is not None else None
        self.agent = CommandAgent(
            anthropic_client,
            ActionDispatcher(list_store),
            list_store,
            **agent_kwargs,
        )
        self.matcher = IngredientMatcher(anthropic_client, **matcher_kwargs)
        self._sessions: dict[tuple[str, str], ConversationSession] = {}
        self._flows: dict[tuple[str, str], ClarificationFlow] = {}

    @classmethod
    def from_config(cls, config: Config, anthropic_client: Any) -> PantryAssistant:
        """Build an assistant backed by the configured database.

        Args:
            config: Application configuration.
            anthropic_client: Anthropic API client.

        Returns:
            Ready-to-use PantryAssistant.
        """
        return cls(
            ListStore(config.database_path),
            PantryStore(config.database_path),
            anthropic_client,
            config,
        )

    # ------------------------------------------------------------------
    # List commands
    # ------------------------------------------------------------------

    def submit_command(
        self,
        owner_id: str,
        session_id: str,
        text: str,
    ) -> CommandResponse:
        """Run one agent round in the owner's session ``session_id``.

        The session is created on first use and kept until
        :meth:`end_session`.

        Args:
            owner_id: Authenticated caller identity.
            session_id: Caller-chosen conversation id.
            text: The user's message.

        Returns:
            CommandResponse for the UI.
        """
        key = (owner_id, session_id)
        session = self._sessions.get(key)
        if session is None:
            session = ConversationSession(owner_id=owner_id, session_id=session_id)
            self._sessions[key] = session
        outcome = self.agent.submit(session, text)
        response = _response_from_outcome(outcome)
        if response.kind is not None:
            logger.warning("Command failed (%s) for owner %s", response.kind, owner_id)
        return response

    def end_session(self, owner_id: str, session_id: str) -> bool:
        """Discard a conversation.

        Returns:
            True if a session was discarded.
        """
        return self._sessions.pop((owner_id, session_id), None) is not None

    def get_session(self, owner_id: str, session_id: str) -> ConversationSession | None:
        """Return the owner's session, if it exists."""
        return self._sessions.get((owner_id, session_id))

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def check_recipe_feasibility(
        self,
        owner_id: str,
        recipe: Recipe,
    ) -> FeasibilityVerdict:
        """Check a recipe against a fresh snapshot of the owner's pantry.

        Args:
            owner_id: Authenticated caller identity.
            recipe: Recipe to check.

        Returns:
            The validated verdict.

        Raises:
            AssistantError: ModelError, StorageError, or ContractViolation.
        """
        pantry = self.pantry_store.list_all(owner_id)
        return self.matcher.check(recipe, pantry)

    def resolve_shortfall(
        self,
        owner_id: str,
        recipe: Recipe,
        user_answer: str | None = None,
    ) -> CommandResponse:
        """Advance the owner's shortfall flow for ``recipe`` by one step.

        With no flow open, a new one is started and the feasibility check
        runs. In ``needs_shortfall_review`` the call confirms adding the
        shortfall; in ``needs_user_context`` ``user_answer`` is sent to
        the agent. Terminal flows are dropped so the next call starts over.

        Args:
            owner_id: Authenticated caller identity.
            recipe: Recipe being resolved.
            user_answer: Answer to the agent's last question, if asked.

        Returns:
            CommandResponse describing the new state.
        """
        key = (owner_id, recipe.id)
        flow = self._flows.get(key)
        if flow is None:
            flow = ClarificationFlow(
                owner_id,
                recipe,
                self.matcher,
                self.agent,
                self.pantry_store,
                max_rounds=self._round_limit,
            )
            self._flows[key] = flow
            flow.start()
        elif flow.state == FlowState.NEEDS_SHORTFALL_REVIEW:
            flow.confirm_add_to_list()
        elif flow.state == FlowState.NEEDS_USER_CONTEXT:
            if not user_answer:
                return CommandResponse(ResponseStatus.NEEDS_CLARIFICATION, flow.question)
            flow.answer(user_answer)

        response = _response_from_flow(flow)
        if flow.is_terminal:
            del self._flows[key]
        return response

    def discard_flow(self, owner_id: str, recipe_id: str) -> bool:
        """Abandon the owner's open flow for a recipe.

        Returns:
            True if a flow was discarded.
        """
        return self._flows.pop((owner_id, recipe_id), None) is not None
