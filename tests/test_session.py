"""Tests for pantry_assistant.session module."""

from __future__ import annotations

from pantry_assistant.models import Role, ToolCall
from pantry_assistant.session import ConversationSession


class TestConversationSession:
    """Tests for transcript bookkeeping."""

    def test_new_sessions_are_independent(self) -> None:
        """Test two sessions never share ids or turns."""
        first = ConversationSession(owner_id="alice")
        second = ConversationSession(owner_id="alice")
        first.add_user_turn("add milk")
        assert first.session_id != second.session_id
        assert second.turns == []

    def test_turns_in_order(self) -> None:
        """Test turns are appended in the order they happen."""
        session = ConversationSession(owner_id="alice")
        session.add_user_turn("add milk")
        session.add_model_turn(
            "Added 1 item(s): Milk (1 pieces).",
            tool_call=ToolCall(name="list_control", args={"action": "create"}),
        )
        assert [t.role for t in session.turns] == [Role.USER, Role.MODEL]
        assert session.last_turn.tool_call.name == "list_control"

    def test_last_turn_empty(self) -> None:
        """Test last_turn on an empty session."""
        assert ConversationSession(owner_id="alice").last_turn is None


class TestToMessages:
    """Tests for ConversationSession.to_messages."""

    def test_maps_roles(self) -> None:
        """Test model turns are sent as assistant messages."""
        session = ConversationSession(owner_id="alice")
        session.add_user_turn("add stuff")
        session.add_model_turn("What would you like to add?")
        session.add_user_turn("milk")
        assert session.to_messages() == [
            {"role": "user", "content": "add stuff"},
            {"role": "assistant", "content": "What would you like to add?"},
            {"role": "user", "content": "milk"},
        ]

    def test_failed_round_is_dropped(self) -> None:
        """Test a failed round's request and error are both left out."""
        session = ConversationSession(owner_id="alice")
        session.add_user_turn("add milk")
        session.add_model_turn("timed out", error_kind="model")
        session.add_user_turn("add milk please")
        assert session.to_messages() == [
            {"role": "user", "content": "add milk please"},
        ]

    def test_failed_answer_keeps_earlier_question(self) -> None:
        """Test only the failed answer is dropped from a clarification."""
        session = ConversationSession(owner_id="alice")
        session.add_user_turn("add stuff")
        session.add_model_turn("What would you like to add?")
        session.add_user_turn("2 kg chicken")
        session.add_model_turn("Unit not allowed", error_kind="contract")
        session.add_user_turn("2 lbs chicken")
        assert session.to_messages() == [
            {"role": "user", "content": "add stuff"},
            {"role": "assistant", "content": "What would you like to add?"},
            {"role": "user", "content": "2 lbs chicken"},
        ]

    def test_merges_adjacent_user_turns(self) -> None:
        """Test consecutive user turns are joined into one message."""
        session = ConversationSession(owner_id="alice")
        session.add_user_turn("add milk")
        session.add_user_turn("and eggs")
        assert session.to_messages() == [
            {"role": "user", "content": "add milk\n\nand eggs"},
        ]

    def test_drops_leading_model_turns(self) -> None:
        """Test the rendered conversation always opens with the user."""
        session = ConversationSession(owner_id="alice")
        session.add_model_turn("Hello!")
        session.add_user_turn("add eggs")
        assert session.to_messages()[0]["role"] == "user"
        assert len(session.to_messages()) == 1
