"""TaskManager - owns the three priority buckets and the task file."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

import structlog
from pydantic import ValidationError

from tlm.config import TASKS_FILE
from tlm.dates import stamp
from tlm.state import State
from tlm.storage import ForestDocument, IOResult, backup_file, lock_path, read_file, write_file
from tlm.task import Task, rebuild_parents

logger = structlog.get_logger(__name__)

ID_WIDTH = 6


class Priority(str, Enum):
    """Task priority levels, one bucket each."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskManager:
    """Creates tasks, finds them, and reads/writes the whole forest.

    Each bucket is an ordered list of root tasks; subtasks live inside their
    parents. Tasks do not know which bucket they are in.

    Attributes:
        task_file: Path of the JSON file read and written
        high_prior_tasks: Root tasks with high priority
        med_prior_tasks: Root tasks with medium priority
        low_prior_tasks: Root tasks with low priority
    """

    def __init__(self, task_file: Path | str | None = None) -> None:
        self.task_file = Path(task_file) if task_file is not None else TASKS_FILE
        self.high_prior_tasks: list[Task] = []
        self.med_prior_tasks: list[Task] = []
        self.low_prior_tasks: list[Task] = []
        self.num_tasks = 0

    # -- buckets -----------------------------------------------------------

    def bucket(self, priority: Priority) -> list[Task]:
        if priority == Priority.HIGH:
            return self.high_prior_tasks
        if priority == Priority.MEDIUM:
            return self.med_prior_tasks
        return self.low_prior_tasks

    def buckets(self) -> list[tuple[Priority, list[Task]]]:
        """Buckets in lookup order: high, medium, low."""
        return [(priority, self.bucket(priority)) for priority in Priority]

    def all_tasks(self) -> list[Task]:
        """Every task in the forest, parents before their subtasks."""
        return [task for _, roots in self.buckets() for root in roots for task in root.walk()]

    # -- creation and lookup -----------------------------------------------

    def _make_id(self) -> str:
        return str(self.num_tasks).zfill(ID_WIDTH)

    def new_task(
        self,
        author: str,
        name: str,
        description: str,
        when: datetime | None = None,
    ) -> Task:
        """Create a task with the next id. It is not put in any bucket."""
        comparable, pretty = stamp(when)
        task = Task(
            id=self._make_id(),
            name=name,
            description=description,
            comparable_date=comparable,
            pretty_date=pretty,
            author=author,
        )
        self.num_tasks += 1
        return task

    def get_task(self, task_id: str) -> Task | None:
        """Find a task anywhere in the forest."""
        for _, roots in self.buckets():
            for root in roots:
                found = root.find(task_id)
                if found is not None:
                    return found
        return None

    def priority_of(self, task_id: str) -> Priority | None:
        """Bucket holding the task (or its root ancestor)."""
        for priority, roots in self.buckets():
            if any(root.find(task_id) is not None for root in roots):
                return priority
        return None

    # -- insertion and removal ---------------------------------------------

    def insert_task(self, priority: Priority, index: int, task: Task) -> int:
        """Insert a root task at ``index``, clamped to the bucket's bounds.

        Returns the index the task ended up at.
        """
        tasks = self.bucket(priority)
        if index < 0:
            index += len(tasks) + 1
        index = max(0, min(index, len(tasks)))
        tasks.insert(index, task)
        task.parent = None
        return index

    def insert_high_task(self, index: int, task: Task) -> int:
        return self.insert_task(Priority.HIGH, index, task)

    def insert_med_task(self, index: int, task: Task) -> int:
        return self.insert_task(Priority.MEDIUM, index, task)

    def insert_low_task(self, index: int, task: Task) -> int:
        return self.insert_task(Priority.LOW, index, task)

    def _delete_from(self, tasks: list[Task], task_id: str) -> int:
        """Remove a task from one bucket.

        Returns the root index it was removed from, 0 when it was a nested
        subtask, or -1 when the bucket does not hold it.
        """
        for index, root in enumerate(tasks):
            if root.id == task_id:
                del tasks[index]
                # Descendants that also sit in this list go with it
                descendant_ids = {t.id for t in root.walk()} - {task_id}
                tasks[:] = [t for t in tasks if t.id not in descendant_ids]
                return index

        for root in tasks:
            found = root.find(task_id)
            if found is not None and found.parent is not None:
                found.parent.delete_subtask(task_id)
                return 0
        return -1

    def delete_high_task(self, task_id: str) -> int:
        return self._delete_from(self.high_prior_tasks, task_id)

    def delete_med_task(self, task_id: str) -> int:
        return self._delete_from(self.med_prior_tasks, task_id)

    def delete_low_task(self, task_id: str) -> int:
        return self._delete_from(self.low_prior_tasks, task_id)

    def delete_task(self, task_id: str) -> bool:
        """Delete a task and its subtree from whichever bucket holds it."""
        for _, tasks in self.buckets():
            if self._delete_from(tasks, task_id) != -1:
                logger.info("task_deleted", task_id=task_id)
                return True
        return False

    def move_task_by(self, task_id: str, delta: int) -> bool:
        """Move a task among its siblings (bucket roots or subtasks).

        The destination is clamped to the sibling list.
        """
        task = self.get_task(task_id)
        if task is None:
            return False
        if task.parent is not None:
            return task.parent.move_subtask_by(task_id, delta)

        tasks = self.bucket(self.priority_of(task_id) or Priority.LOW)
        index = next(i for i, t in enumerate(tasks) if t is task)
        del tasks[index]
        tasks.insert(max(0, min(index + delta, len(tasks))), task)
        return True

    def change_priority(
        self,
        task_id: str,
        priority: Priority,
        author: str,
        reason: str | None = None,
        when: datetime | None = None,
    ) -> bool:
        """Move a root task to the front of another bucket.

        Records a PriorityChanged annotation on the task. Subtasks follow
        their root and cannot be moved on their own.
        """
        current = self.priority_of(task_id)
        if current is None:
            return False

        tasks = self.bucket(current)
        index = next((i for i, t in enumerate(tasks) if t.id == task_id), None)
        if index is None:
            return False
        if current == priority:
            return True

        task = tasks.pop(index)
        self.insert_task(priority, 0, task)
        if reason is None:
            reason = f"from {current.value} to {priority.value}"
        task.change_state(author, reason, State.PRIORITY_CHANGED, when=when)
        return True

    # -- persistence -------------------------------------------------------

    def lock_path(self) -> Path:
        return lock_path(self.task_file)

    def read_tasks(self) -> IOResult:
        """Replace the in-memory forest with the task file's contents.

        On any failure the current forest is left untouched.
        """
        try:
            text = read_file(self.task_file)
        except (FileNotFoundError, PermissionError, IsADirectoryError) as e:
            logger.error("open_failed", path=str(self.task_file), error=str(e))
            return IOResult.ERROR_OPEN
        except (OSError, UnicodeDecodeError) as e:
            logger.error("read_failed", path=str(self.task_file), error=str(e))
            return IOResult.ERROR_READ

        try:
            document = ForestDocument.from_json(text)
        except ValidationError as e:
            logger.error(
                "parse_failed", path=str(self.task_file), errors=e.error_count()
            )
            return IOResult.ERROR_PARSE

        high = [doc.to_task() for doc in document.high_prior_tasks]
        medium = [doc.to_task() for doc in document.med_prior_tasks]
        low = [doc.to_task() for doc in document.low_prior_tasks]
        for roots in (high, medium, low):
            rebuild_parents(roots)

        self.high_prior_tasks = high
        self.med_prior_tasks = medium
        self.low_prior_tasks = low
        self.num_tasks = max(self.num_tasks, self._next_free_id())

        logger.info("tasks_read", path=str(self.task_file), count=len(self.all_tasks()))
        return IOResult.SUCCESS

    def _next_free_id(self) -> int:
        numeric = [int(task.id) for task in self.all_tasks() if task.id.isdigit()]
        return max(numeric, default=-1) + 1

    def write_tasks(self, do_backup: bool = True) -> IOResult:
        """Write the forest to the task file, backing up the old one first.

        A failed backup aborts the write.
        """
        logger.info("writing_tasks", path=str(self.task_file), backup=do_backup)

        if do_backup:
            result = backup_file(self.task_file)
            if not result:
                logger.error("backup_failed", path=str(self.task_file), result=result.value)
                return result

        document = ForestDocument.from_buckets(
            self.high_prior_tasks, self.med_prior_tasks, self.low_prior_tasks
        )
        result = write_file(self.task_file, document.to_json())
        if result:
            logger.info("tasks_written", path=str(self.task_file))
        return result
