"""Pydantic models and enums for the pantry assistant.

This is the shared type system: shopping-list rows and the tool-call
payloads that mutate them, the conversation transcript, and the recipe
feasibility types.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Unit(StrEnum):
    """Units a shopping list item may be measured in."""

    PIECES = "pieces"
    LBS = "lbs"
    OZ = "oz"
    CUPS = "cups"
    TBSP = "tbsp"
    TSP = "tsp"
    GALLONS = "gallons"
    LITERS = "liters"
    PACKAGES = "packages"


class ItemCategory(StrEnum):
    """Grocery aisle categories for shopping list items."""

    PRODUCE = "Produce"
    DAIRY = "Dairy"
    MEAT = "Meat"
    BAKERY = "Bakery"
    FROZEN = "Frozen"
    BEVERAGES = "Beverages"
    SNACKS = "Snacks"
    CANNED_GOODS = "Canned Goods"
    CONDIMENTS = "Condiments"
    GRAINS = "Grains"
    SEASONINGS = "Seasonings"
    MISC = "Misc"


class Priority(StrEnum):
    """How urgently an item is needed."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Action(StrEnum):
    """Mutations the list_control tool can request."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Role(StrEnum):
    """Author of a conversation turn."""

    USER = "user"
    MODEL = "model"


class MissingReason(StrEnum):
    """Why a recipe ingredient shows up on the shortfall list."""

    MISSING = "missing"
    INSUFFICIENT = "insufficient"


_UNIT_ALIASES: dict[str, Unit] = {
    # Count
    "piece": Unit.PIECES,
    "pcs": Unit.PIECES,
    "each": Unit.PIECES,
    "units": Unit.PIECES,
    "unit": Unit.PIECES,
    # Weight
    "lb": Unit.LBS,
    "pound": Unit.LBS,
    "pounds": Unit.LBS,
    "ounce": Unit.OZ,
    "ounces": Unit.OZ,
    # Volume
    "cup": Unit.CUPS,
    "tablespoon": Unit.TBSP,
    "tablespoons": Unit.TBSP,
    "teaspoon": Unit.TSP,
    "teaspoons": Unit.TSP,
    "gallon": Unit.GALLONS,
    "gal": Unit.GALLONS,
    "liter": Unit.LITERS,
    "l": Unit.LITERS,
    "litre": Unit.LITERS,
    "litres": Unit.LITERS,
    # Packaging
    "package": Unit.PACKAGES,
    "pkg": Unit.PACKAGES,
    "pack": Unit.PACKAGES,
    "packs": Unit.PACKAGES,
}

_CATEGORY_LOOKUP: dict[str, ItemCategory] = {
    member.value.lower(): member for member in ItemCategory
}
_CATEGORY_LOOKUP.update(
    {
        "canned": ItemCategory.CANNED_GOODS,
        "canned_goods": ItemCategory.CANNED_GOODS,
        "miscellaneous": ItemCategory.MISC,
        "other": ItemCategory.MISC,
        "spices": ItemCategory.SEASONINGS,
    }
)


def parse_unit(raw: str) -> Unit:
    """Parse a raw unit string into a Unit enum member.

    Handles exact matches, aliases, and case-insensitive lookup.

    Args:
        raw: Raw unit string from a tool call, the database, or user input.

    Returns:
        Matching Unit enum member.

    Raises:
        ValueError: If the string names no known unit.
    """
    cleaned = raw.strip().lower()
    try:
        return Unit(cleaned)
    except ValueError:
        pass
    result = _UNIT_ALIASES.get(cleaned)
    if result is None:
        raise ValueError(f"Unknown unit: {raw!r}")
    return result


def parse_category(raw: str) -> ItemCategory:
    """Parse a raw category string into an ItemCategory member.

    Args:
        raw: Raw category string (any case).

    Returns:
        Matching ItemCategory member.

    Raises:
        ValueError: If the string names no known category.
    """
    result = _CATEGORY_LOOKUP.get(raw.strip().lower())
    if result is None:
        raise ValueError(f"Unknown category: {raw!r}")
    return result


def title_case_name(name: str) -> str:
    """Upper-case the first letter of each word in an item name."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split())


# ---------------------------------------------------------------------------
# Shopping list items
# ---------------------------------------------------------------------------


class _ItemFields(BaseModel):
    """Validators shared by drafts and patches."""

    @field_validator("unit", mode="before", check_fields=False)
    @classmethod
    def _normalize_unit(cls, v: object) -> object:
        if v is None or isinstance(v, Unit):
            return v
        return parse_unit(str(v))

    @field_validator("category", mode="before", check_fields=False)
    @classmethod
    def _normalize_category(cls, v: object) -> object:
        if v is None or isinstance(v, ItemCategory):
            return v
        return parse_category(str(v))

    @field_validator("priority", mode="before", check_fields=False)
    @classmethod
    def _normalize_priority(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("name", mode="after", check_fields=False)
    @classmethod
    def _normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        cleaned = title_case_name(v)
        if not cleaned:
            raise ValueError("Item name must not be blank")
        return cleaned


class ListItemDraft(_ItemFields):
    """A shopping list item as requested by a create action.

    Only ``name`` is mandatory; everything else falls back to a default
    so a sparse request still produces a complete row.
    """

    name: str
    quantity: float = Field(default=1.0, gt=0)
    unit: Unit = Unit.PIECES
    category: ItemCategory = ItemCategory.MISC
    priority: Priority = Priority.MEDIUM
    notes: str = ""
    estimated_price: float | None = Field(default=None, ge=0)


class ListItemPatch(_ItemFields):
    """A partial update to one shopping list item.

    Fields left as None are not touched. At least one field must be set.
    """

    name: str | None = None
    quantity: float | None = Field(default=None, gt=0)
    unit: Unit | None = None
    category: ItemCategory | None = None
    priority: Priority | None = None
    notes: str | None = None
    estimated_price: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _require_a_change(self) -> ListItemPatch:
        if not self.changes():
            raise ValueError("Update patch must change at least one field")
        return self

    def changes(self) -> dict[str, object]:
        """Return only the fields this patch sets."""
        return self.model_dump(exclude_none=True)


class ListItem(BaseModel):
    """A persisted shopping list row."""

    id: str
    owner_id: str
    name: str
    quantity: float
    unit: Unit
    category: ItemCategory
    priority: Priority
    notes: str = ""
    estimated_price: float | None = None
    is_completed: bool = False
    created_at: str


# ---------------------------------------------------------------------------
# Tool call payloads
# ---------------------------------------------------------------------------


class ActionRequest(BaseModel):
    """Arguments of a list_control tool call.

    The per-action invariants are enforced here, so an instance that
    exists is always structurally executable.
    """

    action: Action
    id: str | None = None
    ids: list[str] | None = None
    items: list[dict[str, object]] | None = None

    @model_validator(mode="after")
    def _check_action_shape(self) -> ActionRequest:
        if self.action == Action.CREATE:
            if not self.items:
                raise ValueError("create requires a non-empty items list")
            if self.id or self.ids:
                raise ValueError("create does not take id or ids")
        elif self.action == Action.UPDATE:
            if not self.id:
                raise ValueError("update requires an id")
            if self.ids:
                raise ValueError("update takes a single id, not ids")
            if not self.items or len(self.items) != 1:
                raise ValueError("update requires exactly one item patch")
        elif self.action == Action.DELETE:
            if bool(self.id) == bool(self.ids):
                raise ValueError("delete requires either id or ids, not both")
            if self.items:
                raise ValueError("delete does not take items")
        return self

    def drafts(self) -> list[ListItemDraft]:
        """Validate the items of a create request as full drafts."""
        return [ListItemDraft.model_validate(item) for item in self.items or []]

    def patch(self) -> ListItemPatch:
        """Validate the single item of an update request as a patch."""
        return ListItemPatch.model_validate((self.items or [{}])[0])

    def target_ids(self) -> list[str]:
        """Return the row ids an update or delete addresses."""
        if self.ids:
            return list(self.ids)
        return [self.id] if self.id else []


class ToolCall(BaseModel):
    """A tool invocation produced by the model."""

    name: str
    args: dict[str, object]


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ConversationTurn(BaseModel):
    """One entry in a conversation transcript.

    ``error_kind`` marks turns that record a failure for the caller; they
    are kept in the transcript but never sent back to the model.
    """

    role: Role
    text: str
    tool_call: ToolCall | None = None
    error_kind: str | None = None


# ---------------------------------------------------------------------------
# Recipes and pantry
# ---------------------------------------------------------------------------


class RecipeIngredient(BaseModel):
    """A recipe ingredient with an unparsed free-text amount."""

    name: str
    amount: str = ""


class Recipe(BaseModel):
    """A recipe to check against the pantry."""

    id: str
    name: str
    ingredients: list[RecipeIngredient]


class PantryEntry(BaseModel):
    """One pantry row as seen by the feasibility check."""

    id: str
    name: str
    quantity: float
    unit_amount: float = 1.0
    unit: str = ""

    @property
    def total_amount(self) -> float:
        """Quantity on hand times the amount per unit."""
        return self.quantity * self.unit_amount


class MissingItem(BaseModel):
    """An ingredient the pantry lacks or holds too little of."""

    name: str
    reason: MissingReason
    shortfall: str | None = None

    @model_validator(mode="after")
    def _shortfall_matches_reason(self) -> MissingItem:
        if self.reason == MissingReason.INSUFFICIENT and not self.shortfall:
            raise ValueError(f"insufficient item {self.name!r} needs a shortfall")
        if self.reason == MissingReason.MISSING and self.shortfall is not None:
            raise ValueError(f"missing item {self.name!r} must not carry a shortfall")
        return self


class FeasibilityVerdict(BaseModel):
    """Whether a recipe can be cooked and what is short if not."""

    can_cook: bool
    missing_or_insufficient: list[MissingItem] = []

    @model_validator(mode="after")
    def _verdict_is_consistent(self) -> FeasibilityVerdict:
        if self.can_cook and self.missing_or_insufficient:
            raise ValueError("canCook is true but shortfall items were reported")
        if not self.can_cook and not self.missing_or_insufficient:
            raise ValueError("canCook is false but no shortfall items were reported")
        return self
