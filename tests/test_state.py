"""Tests for tlm.state module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tlm.state import (
    ANNOTATION_STATES,
    PRIMARY_STATES,
    REASON_STATES,
    State,
    TaskState,
    format_states,
)
from tlm.translate import Translation


def _record(state: State, reason: str = "because", **kwargs) -> TaskState:
    return TaskState(
        comparable_date="2026.10.19.17.55.00",
        pretty_date="Mon Oct 19 17:55:00 2026",
        reason=reason,
        state=state,
        author="alice",
        **kwargs,
    )


class TestState:
    """Tests for the State enum."""

    def test_eleven_states(self) -> None:
        """Test the enumeration is closed at 11 members."""
        assert len(State) == 11

    def test_groups_partition_states(self) -> None:
        """Test primary and annotation states split the enum."""
        assert len(PRIMARY_STATES) == 8
        assert ANNOTATION_STATES == {State.EDITED, State.PRIORITY_CHANGED, State.ADDED_SUBTASK}
        assert PRIMARY_STATES | ANNOTATION_STATES == set(State)
        assert not PRIMARY_STATES & ANNOTATION_STATES

    def test_reason_states_are_primary(self) -> None:
        """Test only primary states show their reason."""
        assert REASON_STATES <= PRIMARY_STATES

    def test_values_are_persisted_names(self) -> None:
        """Test values match the names stored in task files."""
        assert State.PUT_ON_HOLD.value == "PutOnHold"
        assert State.PENDING_REVISION.value == "PendingRevision"
        assert State.ADDED_SUBTASK.value == "AddedSubtask"

    def test_is_annotation(self) -> None:
        """Test the is_annotation property."""
        assert State.EDITED.is_annotation
        assert not State.DONE.is_annotation

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Working", State.WORKING),
            ("PUT_ON_HOLD", State.PUT_ON_HOLD),
            ("put-on-hold", State.PUT_ON_HOLD),
            ("on revision", State.ON_REVISION),
            ("done", State.DONE),
            ("SubtaskAdded", State.ADDED_SUBTASK),
        ],
    )
    def test_parse(self, text: str, expected: State) -> None:
        """Test parsing accepts values, member names and legacy names."""
        assert State.parse(text) == expected

    def test_parse_unknown(self) -> None:
        """Test unknown text is an error rather than a silent default."""
        with pytest.raises(ValueError, match="Unknown task state"):
            State.parse("Finished")


class TestFormatStates:
    """Tests for format_states."""

    def test_declaration_order(self) -> None:
        """Test sets render in enum order regardless of iteration order."""
        assert format_states({State.ON_REVISION, State.WORKING}) == "[Working, OnRevision]"

    def test_empty(self) -> None:
        """Test an empty set."""
        assert format_states(set()) == "[]"


class TestTaskState:
    """Tests for TaskState records."""

    def test_fields(self) -> None:
        """Test plain construction."""
        record = _record(State.DONE)
        assert record.state == State.DONE
        assert record.author == "alice"
        assert record.prev_name is None
        assert record.next_description is None

    def test_immutable(self) -> None:
        """Test records cannot be changed after creation."""
        record = _record(State.DONE)
        with pytest.raises(ValidationError):
            record.reason = "changed"  # type: ignore[misc]

    def test_parse_aliases(self) -> None:
        """Test short edit keys and the legacy reason key."""
        record = TaskState.model_validate(
            {
                "comparable_date": "c",
                "pretty_date": "p",
                "reason_state": "old key",
                "state": "Edited",
                "pTN": "a",
                "nTN": "b",
                "pTD": "c",
                "nTD": "d",
            }
        )
        assert record.reason == "old key"
        assert record.prev_name == "a"
        assert record.next_name == "b"
        assert record.prev_description == "c"
        assert record.next_description == "d"
        assert record.author == ""

    def test_unknown_state_rejected(self) -> None:
        """Test unknown state text fails validation."""
        with pytest.raises(ValidationError):
            TaskState.model_validate(
                {"comparable_date": "c", "pretty_date": "p", "reason": "r", "state": "Bogus"}
            )

    def test_legacy_subtask_added(self) -> None:
        """Test the old annotation name still loads."""
        record = TaskState.model_validate(
            {"comparable_date": "c", "pretty_date": "p", "reason": "r", "state": "SubtaskAdded"}
        )
        assert record.state == State.ADDED_SUBTASK

    def test_dump_uses_short_keys(self) -> None:
        """Test edit fields serialise under their short names."""
        record = _record(State.EDITED, prev_name="old", next_name="new")
        data = record.model_dump(mode="json", by_alias=True, exclude_none=True)
        assert data["pTN"] == "old"
        assert data["nTN"] == "new"
        assert data["state"] == "Edited"
        assert "pTD" not in data


class TestRender:
    """Tests for TaskState.render."""

    def test_primary_without_reason(self) -> None:
        """Test Working shows the state but not the reason."""
        text = _record(State.WORKING, reason="secret").render()
        assert "Mon Oct 19 17:55:00 2026 (alice)" in text
        assert "State of task set to: Working" in text
        assert "secret" not in text

    @pytest.mark.parametrize("state", sorted(REASON_STATES, key=list(State).index))
    def test_primary_with_reason(self, state: State) -> None:
        """Test reason-bearing states show their reason."""
        text = _record(state, reason="blocked upstream").render()
        assert "Reason: blocked upstream" in text

    def test_translated_state_name(self) -> None:
        """Test the display name comes from the translation."""
        text = _record(State.PUT_ON_HOLD).render(Translation())
        assert "State of task set to: Put on hold" in text

    def test_edited(self) -> None:
        """Test edits show the annotation and what changed."""
        record = _record(
            State.EDITED,
            prev_name="Draft",
            next_name="Final",
            prev_description="same",
            next_description="same",
        )
        text = record.render()
        assert "The task was edited." in text
        assert 'Name changed from "Draft" to "Final"' in text
        assert "Description changed" not in text
        assert "State of task set to" not in text

    def test_priority_changed(self) -> None:
        """Test priority changes show the annotation sentence."""
        text = _record(State.PRIORITY_CHANGED, reason="from low to high").render()
        assert "Priority changed: from low to high" in text

    def test_added_subtask(self) -> None:
        """Test subtask additions show the annotation sentence only."""
        text = _record(State.ADDED_SUBTASK, reason="ignored").render()
        assert "A subtask was added." in text
        assert "Reason" not in text

    def test_custom_translation(self) -> None:
        """Test templates come from the translation."""
        translation = Translation(state_set_to="Estat: {state}", states={State.DONE: "Fet"})
        text = _record(State.DONE).render(translation)
        assert "Estat: Fet" in text
