"""Precondition tables for task state transitions.

Each lookup is keyed by the state a transition targets:

- current_task_precondition: states the task itself must be in.
- subtask_precondition_for_query: states a direct subtask should be in for
  the request to go through without a warning. Advisory only.
- subtask_precondition_for_cascade: states a direct subtask must be in to
  follow its parent automatically.

The query and cascade tables differ in two rows. Opening a task never opens
its subtasks, and starting work never reopens a finished subtask.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from tlm.state import ALL_STATES, ANNOTATION_STATES, State

_CURRENT_TASK: Mapping[State, frozenset[State]] = MappingProxyType(
    {
        State.DONE: frozenset({State.WORKING, State.ON_REVISION}),
        State.WORKING: frozenset(
            {State.OPENED, State.ON_REVISION, State.PUT_ON_HOLD, State.DONE}
        ),
        State.PUT_ON_HOLD: frozenset({State.WORKING}),
        State.DELETED: frozenset({State.DONE}),
        State.CANCELLED: frozenset({State.OPENED, State.WORKING, State.ON_REVISION}),
        State.ON_REVISION: frozenset({State.PENDING_REVISION, State.WORKING}),
        State.PENDING_REVISION: frozenset({State.WORKING}),
        State.OPENED: frozenset({State.DONE}),
    }
)

_SUBTASK_QUERY: Mapping[State, frozenset[State]] = MappingProxyType(
    {
        State.DONE: frozenset({State.DONE, State.CANCELLED, State.DELETED}),
        State.WORKING: frozenset(
            {State.DONE, State.OPENED, State.WORKING, State.ON_REVISION, State.PUT_ON_HOLD}
        ),
        State.PUT_ON_HOLD: frozenset({State.WORKING, State.PUT_ON_HOLD}),
        State.DELETED: frozenset({State.DONE, State.DELETED}),
        State.CANCELLED: frozenset(
            {State.OPENED, State.CANCELLED, State.WORKING, State.ON_REVISION}
        ),
        State.ON_REVISION: frozenset(
            {State.ON_REVISION, State.PENDING_REVISION, State.WORKING}
        ),
        State.PENDING_REVISION: frozenset({State.WORKING, State.PENDING_REVISION}),
        State.OPENED: ALL_STATES,
    }
)

_SUBTASK_CASCADE: Mapping[State, frozenset[State]] = MappingProxyType(
    {
        **_SUBTASK_QUERY,
        State.WORKING: frozenset(
            {State.OPENED, State.WORKING, State.ON_REVISION, State.PUT_ON_HOLD}
        ),
        State.OPENED: frozenset(),
    }
)


def current_task_precondition(target: State) -> frozenset[State]:
    """States the task itself must be in to move to ``target``."""
    if target in ANNOTATION_STATES:
        return ALL_STATES
    return _CURRENT_TASK[target]


def subtask_precondition_for_query(target: State) -> frozenset[State]:
    """States each direct subtask should be in when asking for ``target``."""
    if target in ANNOTATION_STATES:
        return ALL_STATES
    return _SUBTASK_QUERY[target]


def subtask_precondition_for_cascade(target: State) -> frozenset[State]:
    """States a direct subtask must be in to receive ``target`` by cascade."""
    if target in ANNOTATION_STATES:
        return frozenset()
    return _SUBTASK_CASCADE[target]
