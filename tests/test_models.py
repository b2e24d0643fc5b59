"""Tests for pantry_assistant.models module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pantry_assistant.models import (
    Action,
    ActionRequest,
    FeasibilityVerdict,
    ItemCategory,
    ListItemDraft,
    ListItemPatch,
    MissingItem,
    MissingReason,
    PantryEntry,
    Priority,
    Unit,
    parse_category,
    parse_unit,
    title_case_name,
)


class TestParseUnit:
    """Tests for parse_unit."""

    def test_exact_value(self) -> None:
        """Test canonical values parse to themselves."""
        assert parse_unit("lbs") == Unit.LBS

    def test_aliases(self) -> None:
        """Test common spellings map onto the closed set."""
        assert parse_unit("pound") == Unit.LBS
        assert parse_unit("Tablespoons") == Unit.TBSP
        assert parse_unit(" gal ") == Unit.GALLONS
        assert parse_unit("each") == Unit.PIECES

    def test_unknown_raises(self) -> None:
        """Test a unit outside the enumeration is rejected."""
        with pytest.raises(ValueError, match="Unknown unit"):
            parse_unit("bushels")


class TestParseCategory:
    """Tests for parse_category."""

    def test_case_insensitive(self) -> None:
        """Test category lookup ignores case."""
        assert parse_category("dairy") == ItemCategory.DAIRY
        assert parse_category("CANNED GOODS") == ItemCategory.CANNED_GOODS

    def test_aliases(self) -> None:
        """Test category aliases."""
        assert parse_category("spices") == ItemCategory.SEASONINGS
        assert parse_category("other") == ItemCategory.MISC

    def test_unknown_raises(self) -> None:
        """Test an unknown category is rejected."""
        with pytest.raises(ValueError, match="Unknown category"):
            parse_category("Hardware")


def test_title_case_name() -> None:
    """Test each word's first letter is capitalized, the rest kept."""
    assert title_case_name("  whole   milk ") == "Whole Milk"
    assert title_case_name("iPhone charger") == "IPhone Charger"


class TestListItemDraft:
    """Tests for ListItemDraft defaults and validation."""

    def test_defaults(self) -> None:
        """Test a name-only draft gets every default."""
        draft = ListItemDraft(name="eggs")
        assert draft.name == "Eggs"
        assert draft.quantity == 1.0
        assert draft.unit == Unit.PIECES
        assert draft.category == ItemCategory.MISC
        assert draft.priority == Priority.MEDIUM
        assert draft.notes == ""
        assert draft.estimated_price is None

    def test_normalizes_enums(self) -> None:
        """Test unit, category, and priority are normalized."""
        draft = ListItemDraft.model_validate(
            {"name": "milk", "unit": "Gallon", "category": "dairy", "priority": "HIGH"}
        )
        assert draft.unit == Unit.GALLONS
        assert draft.category == ItemCategory.DAIRY
        assert draft.priority == Priority.HIGH

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_rejects_non_positive_quantity(self, quantity: float) -> None:
        """Test quantity must be greater than zero."""
        with pytest.raises(ValidationError):
            ListItemDraft(name="eggs", quantity=quantity)

    def test_rejects_negative_price(self) -> None:
        """Test estimated price must not be negative."""
        with pytest.raises(ValidationError):
            ListItemDraft(name="eggs", estimated_price=-1)

    def test_rejects_blank_name(self) -> None:
        """Test whitespace-only names are rejected."""
        with pytest.raises(ValidationError):
            ListItemDraft(name="   ")

    def test_rejects_unknown_unit(self) -> None:
        """Test an out-of-set unit fails validation."""
        with pytest.raises(ValidationError):
            ListItemDraft.model_validate({"name": "flour", "unit": "bushels"})


class TestListItemPatch:
    """Tests for ListItemPatch."""

    def test_changes_only_set_fields(self) -> None:
        """Test changes() omits untouched fields."""
        patch = ListItemPatch(quantity=3)
        assert patch.changes() == {"quantity": 3.0}

    def test_empty_patch_rejected(self) -> None:
        """Test a patch that changes nothing is invalid."""
        with pytest.raises(ValidationError, match="at least one field"):
            ListItemPatch()

    def test_name_is_title_cased(self) -> None:
        """Test a renamed item follows the naming rule."""
        assert ListItemPatch(name="oat milk").changes() == {"name": "Oat Milk"}


class TestActionRequest:
    """Tests for per-action shape validation."""

    def test_create_requires_items(self) -> None:
        """Test create with no items is rejected."""
        with pytest.raises(ValidationError, match="non-empty items"):
            ActionRequest(action=Action.CREATE, items=[])

    def test_create_rejects_ids(self) -> None:
        """Test create does not take ids."""
        with pytest.raises(ValidationError):
            ActionRequest(action=Action.CREATE, id="x", items=[{"name": "Eggs"}])

    def test_update_requires_id(self) -> None:
        """Test update without an id is rejected."""
        with pytest.raises(ValidationError, match="requires an id"):
            ActionRequest(action=Action.UPDATE, items=[{"quantity": 2}])

    def test_update_requires_single_patch(self) -> None:
        """Test update needs exactly one item."""
        with pytest.raises(ValidationError, match="exactly one"):
            ActionRequest(
                action=Action.UPDATE,
                id="x",
                items=[{"quantity": 2}, {"quantity": 3}],
            )

    def test_delete_rejects_id_and_ids(self) -> None:
        """Test delete takes id or ids, never both."""
        with pytest.raises(ValidationError, match="either id or ids"):
            ActionRequest(action=Action.DELETE, id="a", ids=["b"])

    def test_delete_requires_target(self) -> None:
        """Test delete without targets is rejected."""
        with pytest.raises(ValidationError):
            ActionRequest(action=Action.DELETE)

    def test_target_ids(self) -> None:
        """Test target_ids for single and batch forms."""
        assert ActionRequest(action=Action.DELETE, id="a").target_ids() == ["a"]
        assert ActionRequest(action=Action.DELETE, ids=["a", "b"]).target_ids() == [
            "a",
            "b",
        ]

    def test_drafts(self) -> None:
        """Test drafts() applies item defaults."""
        request = ActionRequest(action=Action.CREATE, items=[{"name": "bread"}])
        (draft,) = request.drafts()
        assert draft.name == "Bread"
        assert draft.quantity == 1.0


class TestMissingItem:
    """Tests for MissingItem reason/shortfall consistency."""

    def test_missing_has_no_shortfall(self) -> None:
        """Test a missing item with a shortfall is rejected."""
        with pytest.raises(ValidationError):
            MissingItem(name="Flour", reason=MissingReason.MISSING, shortfall="1 cup")

    def test_insufficient_needs_shortfall(self) -> None:
        """Test an insufficient item without a shortfall is rejected."""
        with pytest.raises(ValidationError):
            MissingItem(name="Eggs", reason=MissingReason.INSUFFICIENT)

    def test_valid_entries(self) -> None:
        """Test well-formed entries."""
        assert MissingItem(name="Flour", reason="missing").shortfall is None
        item = MissingItem(name="Eggs", reason="insufficient", shortfall="1 egg")
        assert item.shortfall == "1 egg"


class TestFeasibilityVerdict:
    """Tests for the can_cook / shortfall list agreement."""

    def test_can_cook_with_items_rejected(self) -> None:
        """Test can_cook=True with a non-empty list is rejected."""
        with pytest.raises(ValidationError):
            FeasibilityVerdict(
                can_cook=True,
                missing_or_insufficient=[{"name": "Flour", "reason": "missing"}],
            )

    def test_cannot_cook_without_items_rejected(self) -> None:
        """Test can_cook=False with an empty list is rejected."""
        with pytest.raises(ValidationError):
            FeasibilityVerdict(can_cook=False, missing_or_insufficient=[])

    def test_consistent_verdicts(self) -> None:
        """Test both consistent shapes validate."""
        assert FeasibilityVerdict(can_cook=True).missing_or_insufficient == []
        verdict = FeasibilityVerdict(
            can_cook=False,
            missing_or_insufficient=[{"name": "Flour", "reason": "missing"}],
        )
        assert verdict.missing_or_insufficient[0].name == "Flour"


def test_pantry_entry_total_amount() -> None:
    """Test total amount multiplies quantity by unit amount."""
    entry = PantryEntry(id="p1", name="Tomatoes", quantity=2, unit_amount=16, unit="oz")
    assert entry.total_amount == 32
