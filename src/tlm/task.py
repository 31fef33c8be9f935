"""Tasks and their state-transition protocol.

A task sits in a forest: it owns its subtasks and keeps a weak reference
back to its parent. Its lifecycle state is never stored; it is read off the
append-only change log, skipping annotation entries.

Typical use by a caller::

    problems = task.ask_change_state(State.DONE)
    if not problems:
        task.change_state(author, "all checks green", State.DONE)
"""

from __future__ import annotations

import weakref
from collections.abc import Iterable, Iterator
from dataclasses import InitVar, dataclass, field
from datetime import datetime

import structlog

from tlm.dates import stamp
from tlm.rules import (
    current_task_precondition,
    subtask_precondition_for_cascade,
    subtask_precondition_for_query,
)
from tlm.state import ANNOTATION_STATES, NULL_REASON, State, TaskState, format_states
from tlm.translate import Translation

logger = structlog.get_logger(__name__)

OPENED_REASON = "Opened task"
ADDED_SUBTASK_REASON = "A subtask was added."


class TaskStateError(RuntimeError):
    """A task's change log holds no lifecycle state."""


@dataclass
class Task:
    """A node in the task forest.

    Built either fresh (pass ``author``; the initial Opened record is
    appended) or from persisted data (pass ``changes``).
    """

    id: str
    name: str
    description: str
    comparable_date: str
    pretty_date: str
    changes: list[TaskState] = field(default_factory=list)
    subtasks: list[Task] = field(default_factory=list)
    author: InitVar[str | None] = None
    _parent_ref: weakref.ref[Task] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self, author: str | None) -> None:
        if not self.changes:
            self.changes.append(
                TaskState(
                    comparable_date=self.comparable_date,
                    pretty_date=self.pretty_date,
                    reason=OPENED_REASON,
                    state=State.OPENED,
                    author=author or "",
                )
            )

    def __str__(self) -> str:
        return f"{self.name} -- (id: {self.id})"

    # -- structure ---------------------------------------------------------

    @property
    def parent(self) -> Task | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, task: Task | None) -> None:
        self._parent_ref = weakref.ref(task) if task is not None else None

    @property
    def created_by(self) -> str:
        """Author of the initial Opened record."""
        return self.changes[0].author

    def walk(self) -> Iterator[Task]:
        """Yield this task and all its descendants, parents first."""
        yield self
        for subtask in self.subtasks:
            yield from subtask.walk()

    def find(self, task_id: str) -> Task | None:
        """Find a task by id in this subtree."""
        for task in self.walk():
            if task.id == task_id:
                return task
        return None

    def add_subtask(self, subtask: Task) -> None:
        """Add a subtask in front of the existing ones.

        Adding to a Done task leaves it Done and records an AddedSubtask
        annotation stamped with the subtask's creation.
        """
        if self.is_done():
            self.changes.append(
                TaskState(
                    comparable_date=subtask.comparable_date,
                    pretty_date=subtask.pretty_date,
                    reason=ADDED_SUBTASK_REASON,
                    state=State.ADDED_SUBTASK,
                    author=subtask.created_by,
                )
            )
        self.subtasks.insert(0, subtask)
        subtask.parent = self

    def move_subtask_by(self, task_id: str, delta: int) -> bool:
        """Move a direct subtask ``delta`` places; the target is clamped.

        Returns False if no direct subtask has that id.
        """
        for index, subtask in enumerate(self.subtasks):
            if subtask.id == task_id:
                break
        else:
            return False

        del self.subtasks[index]
        target = max(0, min(index + delta, len(self.subtasks)))
        self.subtasks.insert(target, subtask)
        return True

    def delete_subtask(self, task_id: str) -> bool:
        """Remove a direct subtask (and, with it, its subtree)."""
        for index, subtask in enumerate(self.subtasks):
            if subtask.id == task_id:
                del self.subtasks[index]
                subtask.parent = None
                return True
        return False

    def delete_subtasks(self) -> None:
        """Remove the whole subtree below this task."""
        for subtask in self.subtasks:
            subtask.delete_subtasks()
            subtask.parent = None
        self.subtasks.clear()

    # -- state -------------------------------------------------------------

    def current_state(self) -> TaskState:
        """The latest record holding a primary state."""
        for change in reversed(self.changes):
            if change.state not in ANNOTATION_STATES:
                return change
        raise TaskStateError(f"Task {self.id} has no lifecycle state in its history")

    def is_one_of_state(self, states: Iterable[State]) -> bool:
        return self.current_state().state in states

    def is_done(self) -> bool:
        return self.current_state().state == State.DONE

    def subtasks_state_is_one_of(self, states: Iterable[State]) -> bool:
        """Whether every direct subtask is in one of ``states``."""
        states = frozenset(states)
        return all(subtask.is_one_of_state(states) for subtask in self.subtasks)

    def ask_change_state(self, target: State) -> str:
        """Check whether this task may move to ``target``.

        Returns an empty string when the transition is fully permitted.
        Otherwise returns one line per problem: either the task's own state
        (checked first, alone) or each direct subtask that is not ready.
        """
        if target in ANNOTATION_STATES:
            return ""

        allowed = current_task_precondition(target)
        actual = self.current_state().state
        if actual not in allowed:
            message = (
                f"The state of task {self.id} is none of: {format_states(allowed)}. "
                f"Its state is: {actual.value}.\n"
            )
            logger.warning(
                "precondition_failed",
                task_id=self.id,
                target=target.value,
                allowed=format_states(allowed),
                actual=actual.value,
            )
            return message

        allowed = subtask_precondition_for_query(target)
        problems = []
        for subtask in self.subtasks:
            if not subtask.is_one_of_state(allowed):
                problems.append(
                    f"Task {subtask.id} (subtask of {self.id}), is not in any of the "
                    f"states: {format_states(allowed)}.\n"
                )
                logger.warning(
                    "subtask_precondition_failed",
                    task_id=self.id,
                    subtask_id=subtask.id,
                    target=target.value,
                    allowed=format_states(allowed),
                    actual=subtask.current_state().state.value,
                )
        return "".join(problems)

    def change_state(
        self,
        author: str,
        reason: str | None,
        target: State,
        when: datetime | None = None,
    ) -> None:
        """Record a move to ``target`` and cascade it down the subtree.

        Annotation targets are recorded on this task only. Primary targets
        also reach every direct subtask whose state allows the cascade, and
        from there keep going down.
        """
        comparable, pretty = stamp(when)
        self._apply(comparable, pretty, author, reason, target)

    def task_was_edited(
        self,
        author: str,
        reason: str | None,
        prev_name: str,
        prev_description: str,
        target: State = State.EDITED,
        when: datetime | None = None,
    ) -> None:
        """Record an edit; call after the new name/description are set."""
        comparable, pretty = stamp(when)
        self._record(
            comparable,
            pretty,
            author,
            reason,
            target,
            prev_name=prev_name,
            prev_description=prev_description,
        )

    def _apply(
        self, comparable: str, pretty: str, author: str, reason: str | None, target: State
    ) -> None:
        self._record(comparable, pretty, author, reason, target)
        if target in ANNOTATION_STATES:
            return

        eligible = subtask_precondition_for_cascade(target)
        for subtask in self.subtasks:
            if subtask.is_one_of_state(eligible):
                subtask._apply(comparable, pretty, author, reason, target)

    def _record(
        self,
        comparable: str,
        pretty: str,
        author: str,
        reason: str | None,
        target: State,
        prev_name: str | None = None,
        prev_description: str | None = None,
    ) -> None:
        edit_fields = {}
        if target == State.EDITED:
            edit_fields = {
                "prev_name": prev_name,
                "next_name": self.name,
                "prev_description": prev_description,
                "next_description": self.description,
            }
        self.changes.append(
            TaskState(
                comparable_date=comparable,
                pretty_date=pretty,
                reason=reason if reason is not None else NULL_REASON,
                state=target,
                author=author,
                **edit_fields,
            )
        )

    # -- display -----------------------------------------------------------

    def changes_to_string(self, translation: Translation | None = None) -> str:
        """Render the whole history, oldest first."""
        translation = translation or Translation()
        return "".join(change.render(translation) for change in self.changes)


def rebuild_parents(roots: Iterable[Task]) -> None:
    """Point every subtask in the forest back at its parent."""
    for root in roots:
        root.parent = None
        for task in root.walk():
            for subtask in task.subtasks:
                subtask.parent = task
