"""Lifecycle states and the change records that make up a task's history."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from tlm.translate import Translation


class State(str, Enum):
    """Every state a task's history can record.

    The first eight are primary states: where a task actually stands.
    The last three are annotation events, logged for history only.
    """

    OPENED = "Opened"
    WORKING = "Working"
    PUT_ON_HOLD = "PutOnHold"
    ON_REVISION = "OnRevision"
    PENDING_REVISION = "PendingRevision"
    DONE = "Done"
    CANCELLED = "Cancelled"
    DELETED = "Deleted"

    EDITED = "Edited"
    PRIORITY_CHANGED = "PriorityChanged"
    ADDED_SUBTASK = "AddedSubtask"

    @property
    def is_annotation(self) -> bool:
        return self in ANNOTATION_STATES

    @classmethod
    def parse(cls, text: str) -> State:
        """Parse persisted or user-typed state text.

        Accepts the exact value ("PutOnHold"), the member name ("PUT_ON_HOLD")
        and the legacy "SubtaskAdded". Raises ValueError on anything else.
        """
        if text in _LEGACY_NAMES:
            return _LEGACY_NAMES[text]
        try:
            return cls(text)
        except ValueError:
            pass
        normalized = text.strip().upper().replace("-", "_").replace(" ", "_")
        if normalized in cls.__members__:
            return cls[normalized]
        raise ValueError(f"Unknown task state: {text!r}")


ALL_STATES: frozenset[State] = frozenset(State)

PRIMARY_STATES: frozenset[State] = frozenset(
    {
        State.OPENED,
        State.WORKING,
        State.PUT_ON_HOLD,
        State.ON_REVISION,
        State.PENDING_REVISION,
        State.DONE,
        State.CANCELLED,
        State.DELETED,
    }
)

ANNOTATION_STATES: frozenset[State] = frozenset(
    {State.EDITED, State.PRIORITY_CHANGED, State.ADDED_SUBTASK}
)

# Primary states whose history entry also shows the reason
REASON_STATES: frozenset[State] = frozenset(
    {State.DELETED, State.PUT_ON_HOLD, State.CANCELLED, State.PENDING_REVISION}
)

_LEGACY_NAMES = {"SubtaskAdded": State.ADDED_SUBTASK}

# Written when a change is recorded without a reason
NULL_REASON = "null"


def format_states(states: Iterable[State]) -> str:
    """Render a state set in declaration order, e.g. '[Working, OnRevision]'."""
    order = list(State)
    ordered = sorted(states, key=order.index)
    return "[" + ", ".join(s.value for s in ordered) + "]"


class TaskState(BaseModel):
    """One immutable entry in a task's change log."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    comparable_date: str
    pretty_date: str
    reason: str = Field(validation_alias=AliasChoices("reason", "reason_state"))
    state: State
    author: str = ""
    prev_name: str | None = Field(default=None, alias="pTN")
    next_name: str | None = Field(default=None, alias="nTN")
    prev_description: str | None = Field(default=None, alias="pTD")
    next_description: str | None = Field(default=None, alias="nTD")

    @field_validator("state", mode="before")
    @classmethod
    def _parse_state(cls, value: object) -> object:
        if isinstance(value, str) and value in _LEGACY_NAMES:
            return _LEGACY_NAMES[value]
        return value

    @field_validator("author", mode="before")
    @classmethod
    def _null_author(cls, value: object) -> object:
        return "" if value is None else value

    def render(self, translation: Translation | None = None) -> str:
        """Render this record as an indented block for the history view."""
        if translation is None:
            from tlm.translate import Translation

            translation = Translation()

        indent = "    "
        lines = [translation.change_header.format(date=self.pretty_date, author=self.author)]

        if self.state == State.EDITED:
            lines.append(indent + translation.edited.format(reason=self.reason))
            if self.prev_name is not None and self.prev_name != self.next_name:
                lines.append(
                    indent + translation.name_changed.format(
                        before=self.prev_name, after=self.next_name or ""
                    )
                )
            if self.prev_description is not None and self.prev_description != self.next_description:
                lines.append(
                    indent + translation.description_changed.format(
                        before=self.prev_description, after=self.next_description or ""
                    )
                )
        elif self.state == State.PRIORITY_CHANGED:
            lines.append(indent + translation.priority_changed.format(reason=self.reason))
        elif self.state == State.ADDED_SUBTASK:
            lines.append(indent + translation.added_subtask.format(reason=self.reason))
        else:
            lines.append(
                indent + translation.state_set_to.format(state=translation.state_name(self.state))
            )
            if self.state in REASON_STATES:
                lines.append(indent + translation.reason.format(reason=self.reason))

        return "\n".join(lines) + "\n"
