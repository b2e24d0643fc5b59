"""Execution of list_control tool calls against the shopping list.

:class:`ActionDispatcher` is the authorization boundary for agent-driven
edits: every storage call it makes is constrained by the caller's
``owner_id``, and ids belonging to another owner are refused before
storage is touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pantry_assistant.errors import (
    ActionValidationError,
    AssistantError,
    AuthorizationError,
    ErrorKind,
)
from pantry_assistant.models import Action
from pantry_assistant.tool_schema import (
    parse_action_request,
    validate_drafts,
    validate_patch,
)

if TYPE_CHECKING:
    from pantry_assistant.list_store import ListStore
    from pantry_assistant.models import ActionRequest, ListItem

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one list_control execution.

    Attributes:
        success: Whether the requested operation completed.
        action: The requested action, if the request parsed.
        affected_items: Rows created, updated, or deleted. On a failed
            create this holds the rows written before the failure.
        requested_count: How many rows the request asked to touch.
        error_kind: Failure category when ``success`` is False.
        error_message: Failure description when ``success`` is False.
    """

    success: bool
    action: Action | None = None
    affected_items: list[ListItem] = field(default_factory=list)
    requested_count: int = 0
    error_kind: ErrorKind | None = None
    error_message: str = ""

    @property
    def is_partial(self) -> bool:
        """True when fewer rows were affected than requested on a failure."""
        return not self.success and 0 < len(self.affected_items) < self.requested_count


class ActionDispatcher:
    """Validate and execute list_control requests for one owner at a time.

    Args:
        list_store: Owner-scoped shopping list storage.
    """

    def __init__(self, list_store: ListStore) -> None:
        """Initialize the dispatcher.

        Args:
            list_store: Owner-scoped shopping list storage.
        """
        self._store = list_store

    def execute(
        self,
        owner_id: str,
        request: ActionRequest | dict[str, object],
    ) -> DispatchResult:
        """Validate a request and run it against the owner's list.

        Args:
            owner_id: Identity of the caller; stamped on created rows and
                required on every updated or deleted row.
            request: Parsed request or raw tool arguments.

        Returns:
            DispatchResult describing success or the typed failure.
        """
        try:
            parsed = parse_action_request(request)
        except ActionValidationError as exc:
            logger.warning("Rejected malformed list_control call: %s", exc.message)
            return DispatchResult(
                success=False,
                error_kind=exc.kind,
                error_message=exc.message,
            )

        logger.info("Executing list_control %s for owner %s", parsed.action, owner_id)
        try:
            if parsed.action == Action.CREATE:
                return self._create(owner_id, parsed)
            if parsed.action == Action.UPDATE:
                return self._update(owner_id, parsed)
            return self._delete(owner_id, parsed)
        except AssistantError as exc:
            if exc.kind == ErrorKind.AUTHORIZATION:
                logger.warning("Refused cross-owner %s: %s", parsed.action, exc.message)
            else:
                logger.warning("list_control %s failed: %s", parsed.action, exc.message)
            return DispatchResult(
                success=False,
                action=parsed.action,
                affected_items=list(getattr(exc, "written", [])),
                requested_count=_requested_count(parsed),
                error_kind=exc.kind,
                error_message=exc.message,
            )

    # ------------------------------------------------------------------
    # Per-action handlers
    # ------------------------------------------------------------------

    def _create(self, owner_id: str, request: ActionRequest) -> DispatchResult:
        drafts = validate_drafts(request)
        rows = self._store.insert_many(owner_id, drafts)
        return DispatchResult(
            success=True,
            action=Action.CREATE,
            affected_items=rows,
            requested_count=len(drafts),
        )

    def _update(self, owner_id: str, request: ActionRequest) -> DispatchResult:
        patch = validate_patch(request)
        ids = request.target_ids()
        self._check_ownership(owner_id, ids)
        rows = self._store.update_one(ids[0], owner_id, patch.changes())
        return DispatchResult(
            success=True,
            action=Action.UPDATE,
            affected_items=rows,
            requested_count=1,
        )

    def _delete(self, owner_id: str, request: ActionRequest) -> DispatchResult:
        ids = request.target_ids()
        self._check_ownership(owner_id, ids)
        rows = self._store.delete_many(ids, owner_id)
        return DispatchResult(
            success=True,
            action=Action.DELETE,
            affected_items=rows,
            requested_count=len(ids),
        )

    def _check_ownership(self, owner_id: str, ids: list[str]) -> None:
        """Refuse the request if any id belongs to a different owner.

        Raises:
            AuthorizationError: If a foreign id is referenced.
        """
        foreign = self._store.foreign_ids(ids, owner_id)
        if foreign:
            raise AuthorizationError(
                f"{len(foreign)} of the requested item(s) are not on your list"
            )


def _requested_count(request: ActionRequest) -> int:
    if request.action == Action.CREATE:
        return len(request.items or [])
    return len(request.target_ids())
