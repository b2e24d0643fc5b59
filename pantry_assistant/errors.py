"""Error taxonomy shared by the list agent and the feasibility check.

Each error carries a machine-readable :class:`ErrorKind` so callers can
log the kind while showing the user a single readable message.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pantry_assistant.models import ListItem


class ErrorKind(StrEnum):
    """Machine-readable failure categories."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STORAGE = "storage"
    MODEL = "model"
    CONTRACT = "contract"
    ROUND_LIMIT = "round_limit"


class AssistantError(Exception):
    """Base class for failures surfaced to the caller as typed results."""

    kind: ErrorKind = ErrorKind.CONTRACT

    def __init__(self, message: str) -> None:
        """Initialize the error.

        Args:
            message: Human-readable description.
        """
        super().__init__(message)
        self.message = message


class ActionValidationError(AssistantError):
    """Raised when a tool call's arguments are malformed."""

    kind = ErrorKind.VALIDATION


class AuthorizationError(AssistantError):
    """Raised when a request targets rows owned by another user."""

    kind = ErrorKind.AUTHORIZATION


class StorageError(AssistantError):
    """Raised when the backing store rejects a read or write.

    Attributes:
        written: Rows that were persisted before the failure, if any.
    """

    kind = ErrorKind.STORAGE

    def __init__(self, message: str, written: list[ListItem] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable description.
            written: Rows persisted before the failure.
        """
        super().__init__(message)
        self.written = written or []


class ModelError(AssistantError):
    """Raised on transport failure, timeout, or an empty model reply."""

    kind = ErrorKind.MODEL


class ContractViolation(AssistantError):
    """Raised when model output breaks an invariant it was asked to keep."""

    kind = ErrorKind.CONTRACT
