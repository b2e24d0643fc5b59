"""Declaration of the list_control tool and parsing of its arguments.

``LIST_CONTROL_TOOL`` is passed to Claude on every agent turn; the model
either calls it or answers in plain text. :func:`parse_action_request`
is the single place tool arguments become an :class:`ActionRequest`.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from pantry_assistant.errors import ActionValidationError
from pantry_assistant.models import (
    Action,
    ActionRequest,
    ItemCategory,
    ListItemDraft,
    ListItemPatch,
    Priority,
    Unit,
)

LIST_CONTROL_TOOL_NAME = "list_control"

_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": (
        "One shopping list item. Required for 'create' and 'update'. "
        "When updating, include only the fields that change."
    ),
    "properties": {
        "name": {
            "type": "string",
            "description": "Item name. First letter of each word uppercase.",
        },
        "quantity": {
            "type": "number",
            "exclusiveMinimum": 0,
            "description": "How many units of the item.",
        },
        "unit": {
            "type": "string",
            "enum": [u.value for u in Unit],
            "description": "Unit of measurement for the quantity.",
        },
        "category": {
            "type": "string",
            "enum": [c.value for c in ItemCategory],
            "description": "Store category. Determine it from the item.",
        },
        "priority": {
            "type": "string",
            "enum": [p.value for p in Priority],
            "description": "How urgently the item is needed.",
        },
        "notes": {
            "type": "string",
            "description": "Free-text notes about the item.",
        },
        "estimated_price": {
            "type": "number",
            "minimum": 0,
            "description": "Estimated price of the item.",
        },
    },
}

LIST_CONTROL_TOOL: dict[str, Any] = {
    "name": LIST_CONTROL_TOOL_NAME,
    "description": (
        "Create, update, or delete items on the user's shopping list. "
        "'create' needs a non-empty items array. 'update' needs one id and "
        "exactly one item holding only the changed fields. 'delete' needs "
        "either id (single item) or ids (several items), never both."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": [a.value for a in Action],
                "description": "The operation to perform.",
            },
            "id": {
                "type": "string",
                "description": (
                    "Id of the list item to update, or of the single item "
                    "to delete."
                ),
            },
            "ids": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Ids of several list items to delete at once.",
            },
            "items": {
                "type": "array",
                "items": _ITEM_SCHEMA,
                "description": "Items to insert, or the single patch to apply.",
            },
        },
        "required": ["action"],
    },
}


def _format_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into one line for logs and users."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(loc) for loc in err["loc"])
        message = err["msg"]
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def parse_action_request(args: object) -> ActionRequest:
    """Validate list_control arguments into an ActionRequest.

    Checks the per-action shape and every item against the unit,
    category, and priority enumerations before anything touches storage.

    Args:
        args: The raw ``input`` of a tool_use block.

    Returns:
        A structurally valid ActionRequest.

    Raises:
        ActionValidationError: If the arguments are malformed.
    """
    if isinstance(args, ActionRequest):
        request = args
    else:
        if not isinstance(args, dict):
            raise ActionValidationError("Tool arguments must be a JSON object")
        try:
            request = ActionRequest.model_validate(args)
        except ValidationError as exc:
            raise ActionValidationError(_format_validation_error(exc)) from exc

    if request.action == Action.CREATE:
        validate_drafts(request)
    elif request.action == Action.UPDATE:
        validate_patch(request)
    return request


def validate_drafts(request: ActionRequest) -> list[ListItemDraft]:
    """Return the validated drafts of a create request.

    Raises:
        ActionValidationError: If any item is malformed.
    """
    try:
        return request.drafts()
    except ValidationError as exc:
        raise ActionValidationError(_format_validation_error(exc)) from exc


def validate_patch(request: ActionRequest) -> ListItemPatch:
    """Return the validated patch of an update request.

    Raises:
        ActionValidationError: If the patch is malformed or empty.
    """
    try:
        return request.patch()
    except ValidationError as exc:
        raise ActionValidationError(_format_validation_error(exc)) from exc
