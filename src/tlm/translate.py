"""Display text for states, history entries and report labels.

The core never depends on this table directly; callers pass a Translation
to whatever renders text. Defaults are English. A language file is a JSON
object with any subset of the fields below.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field

from tlm.state import State

DEFAULT_STATE_NAMES: dict[State, str] = {
    State.OPENED: "Opened",
    State.WORKING: "Working",
    State.PUT_ON_HOLD: "Put on hold",
    State.ON_REVISION: "On revision",
    State.PENDING_REVISION: "Pending revision",
    State.DONE: "Done",
    State.CANCELLED: "Cancelled",
    State.DELETED: "Deleted",
    State.EDITED: "Edited",
    State.PRIORITY_CHANGED: "Priority changed",
    State.ADDED_SUBTASK: "Added subtask",
}


class Translation(BaseModel):
    """A translation table."""

    states: dict[State, str] = Field(default_factory=lambda: dict(DEFAULT_STATE_NAMES))

    # History entries
    change_header: str = "{date} ({author})"
    state_set_to: str = "State of task set to: {state}"
    reason: str = "Reason: {reason}"
    edited: str = "The task was edited."
    name_changed: str = 'Name changed from "{before}" to "{after}"'
    description_changed: str = 'Description changed from "{before}" to "{after}"'
    priority_changed: str = "Priority changed: {reason}"
    added_subtask: str = "A subtask was added."

    # Report labels
    label_name: str = "Name"
    label_author: str = "Author"
    label_date: str = "Date"
    label_description: str = "Description"
    label_state: str = "State"
    label_subtasks: str = "Subtasks"
    label_history: str = "History"

    # Bucket names
    high_priority: str = "High priority"
    medium_priority: str = "Medium priority"
    low_priority: str = "Low priority"

    def state_name(self, state: State) -> str:
        """Display name for a state, falling back to its persisted text."""
        return self.states.get(state, state.value)

    @classmethod
    def load(cls, path: Path | None = None) -> Translation:
        """Load a language file, or return the English defaults."""
        if path is None or not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        translation = cls.model_validate(data)
        # Partial state tables keep the defaults for missing entries
        translation.states = {**DEFAULT_STATE_NAMES, **translation.states}
        return translation
