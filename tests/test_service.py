"""Tests for pantry_assistant.service module."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from pantry_assistant.config import Config
from pantry_assistant.errors import ErrorKind
from pantry_assistant.list_store import ListStore
from pantry_assistant.matcher import FEASIBILITY_TOOL_NAME
from pantry_assistant.models import Recipe
from pantry_assistant.pantry_store import PantryStore
from pantry_assistant.service import PantryAssistant, ResponseStatus

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    """Return a temporary database path for test isolation."""
    return str(tmp_path / "test_service.db")


@pytest.fixture()
def mock_client() -> MagicMock:
    """Return a mock Anthropic client."""
    return MagicMock()


@pytest.fixture()
def assistant(db_path: str, mock_client: MagicMock) -> PantryAssistant:
    """Return an assistant over the test database."""
    config = Config(
        anthropic_api_key="sk-test",
        database_path=db_path,
        claude_model="test-model",
        max_clarification_rounds=2,
    )
    return PantryAssistant.from_config(config, mock_client)


@pytest.fixture()
def recipe() -> Recipe:
    """Return a single-ingredient recipe."""
    return Recipe(id="toast", name="Toast", ingredients=[{"name": "bread"}])


def _block(block_type: str, **attrs: Any) -> MagicMock:
    block = MagicMock()
    block.type = block_type
    for key, value in attrs.items():
        setattr(block, key, value)
    return block


def _response(*blocks: MagicMock) -> MagicMock:
    response = MagicMock()
    response.content = list(blocks)
    return response


def _text(text: str) -> MagicMock:
    return _response(_block("text", text=text))


def _list_call(args: dict[str, Any]) -> MagicMock:
    return _response(_block("tool_use", name="list_control", input=args))


def _verdict(payload: dict[str, Any]) -> MagicMock:
    return _response(_block("tool_use", name=FEASIBILITY_TOOL_NAME, input=payload))


_BREAD_MISSING = {
    "can_cook": False,
    "missing_or_insufficient": [
        {"name": "Bread", "reason": "missing", "shortfall": None}
    ],
}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestSubmitCommand:
    """Tests for PantryAssistant.submit_command."""

    def test_invoked(self, assistant: PantryAssistant, mock_client: MagicMock) -> None:
        """Test a clear command reports the change."""
        mock_client.messages.create.return_value = _list_call(
            {"action": "create", "items": [{"name": "Milk"}]}
        )
        response = assistant.submit_command("alice", "s1", "add milk")
        assert response.status == ResponseStatus.INVOKED
        assert response.kind is None
        assert [i.name for i in assistant.list_store.list_items("alice")] == ["Milk"]

    def test_session_reused_per_owner(
        self, assistant: PantryAssistant, mock_client: MagicMock
    ) -> None:
        """Test the same session id continues one owner's conversation only."""
        mock_client.messages.create.return_value = _text("Which milk?")
        assistant.submit_command("alice", "s1", "add milk")
        assistant.submit_command("alice", "s1", "the oat one")
        assistant.submit_command("bob", "s1", "add eggs")
        assert len(assistant.get_session("alice", "s1").turns) == 4
        assert len(assistant.get_session("bob", "s1").turns) == 2

    def test_error_response(
        self, assistant: PantryAssistant, mock_client: MagicMock
    ) -> None:
        """Test failures carry their kind."""
        mock_client.messages.create.return_value = _list_call({"action": "explode"})
        response = assistant.submit_command("alice", "s1", "do something")
        assert response.status == ResponseStatus.ERROR
        assert response.kind == ErrorKind.VALIDATION
        assert response.to_dict()["kind"] == "validation"

    def test_end_session(
        self, assistant: PantryAssistant, mock_client: MagicMock
    ) -> None:
        """Test ending a session discards it."""
        mock_client.messages.create.return_value = _text("Which milk?")
        assistant.submit_command("alice", "s1", "add milk")
        assert assistant.end_session("bob", "s1") is False
        assert assistant.end_session("alice", "s1") is True
        assert assistant.get_session("alice", "s1") is None


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------


class TestFeasibility:
    """Tests for PantryAssistant.check_recipe_feasibility."""

    def test_reads_owner_pantry(
        self,
        assistant: PantryAssistant,
        mock_client: MagicMock,
        recipe: Recipe,
    ) -> None:
        """Test only the caller's pantry is sent to Claude."""
        assistant.pantry_store.add_item("alice", "Sourdough", 1)
        assistant.pantry_store.add_item("bob", "Rye", 1)
        mock_client.messages.create.return_value = _verdict(
            {"can_cook": True, "missing_or_insufficient": []}
        )
        verdict = assistant.check_recipe_feasibility("alice", recipe)
        assert verdict.can_cook is True
        prompt = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert "Sourdough" in prompt
        assert "Rye" not in prompt


class TestResolveShortfall:
    """Tests for PantryAssistant.resolve_shortfall."""

    def test_full_flow(
        self,
        assistant: PantryAssistant,
        mock_client: MagicMock,
        recipe: Recipe,
    ) -> None:
        """Test check, review, question, answer, added."""
        mock_client.messages.create.side_effect = [
            _verdict(_BREAD_MISSING),
            _text("White or wheat bread?"),
            _list_call(
                {
                    "action": "create",
                    "items": [{"name": "Wheat Bread", "category": "Bakery"}],
                }
            ),
        ]
        first = assistant.resolve_shortfall("alice", recipe)
        assert first.status == ResponseStatus.NEEDS_SHORTFALL_REVIEW
        assert "Bread" in first.message

        second = assistant.resolve_shortfall("alice", recipe)
        assert second.status == ResponseStatus.NEEDS_CLARIFICATION
        assert second.message == "White or wheat bread?"

        third = assistant.resolve_shortfall("alice", recipe, "wheat")
        assert third.status == ResponseStatus.INVOKED
        names = [i.name for i in assistant.list_store.list_items("alice")]
        assert names == ["Wheat Bread"]
        assert assistant.discard_flow("alice", recipe.id) is False

    def test_ready(
        self,
        assistant: PantryAssistant,
        mock_client: MagicMock,
        recipe: Recipe,
    ) -> None:
        """Test a cookable recipe reports ready."""
        mock_client.messages.create.return_value = _verdict(
            {"can_cook": True, "missing_or_insufficient": []}
        )
        response = assistant.resolve_shortfall("alice", recipe)
        assert response.status == ResponseStatus.READY

    def test_answer_required(
        self,
        assistant: PantryAssistant,
        mock_client: MagicMock,
        recipe: Recipe,
    ) -> None:
        """Test the question is repeated when no answer is given."""
        mock_client.messages.create.side_effect = [
            _verdict(_BREAD_MISSING),
            _text("White or wheat?"),
        ]
        assistant.resolve_shortfall("alice", recipe)
        assistant.resolve_shortfall("alice", recipe)
        response = assistant.resolve_shortfall("alice", recipe)
        assert response.status == ResponseStatus.NEEDS_CLARIFICATION
        assert response.message == "White or wheat?"
        assert mock_client.messages.create.call_count == 2

    def test_round_limit_from_config(
        self,
        assistant: PantryAssistant,
        mock_client: MagicMock,
        recipe: Recipe,
    ) -> None:
        """Test the configured round cap ends an endless flow."""
        mock_client.messages.create.side_effect = [
            _verdict(_BREAD_MISSING),
            _text("Which bread?"),
            _text("Which bread, really?"),
        ]
        assistant.resolve_shortfall("alice", recipe)
        assistant.resolve_shortfall("alice", recipe)
        assistant.resolve_shortfall("alice", recipe, "any")
        response = assistant.resolve_shortfall("alice", recipe, "any at all")
        assert response.status == ResponseStatus.ERROR
        assert response.kind == ErrorKind.ROUND_LIMIT

    def test_discard_flow(
        self,
        assistant: PantryAssistant,
        mock_client: MagicMock,
        recipe: Recipe,
    ) -> None:
        """Test an open flow can be abandoned and restarted."""
        mock_client.messages.create.return_value = _verdict(_BREAD_MISSING)
        assistant.resolve_shortfall("alice", recipe)
        assert assistant.discard_flow("alice", recipe.id) is True
        response = assistant.resolve_shortfall("alice", recipe)
        assert response.status == ResponseStatus.NEEDS_SHORTFALL_REVIEW
        assert mock_client.messages.create.call_count == 2


def test_default_wiring(tmp_path: Path) -> None:
    """Test the assistant works without a Config."""
    db = str(tmp_path / "plain.db")
    assistant = PantryAssistant(ListStore(db), PantryStore(db), MagicMock())
    assert assistant.matcher.is_staple("water")
