"""JSON persistence for the task forest.

File layout::

    {
        "low_prior_tasks": [<task>, ...],
        "med_prior_tasks": [<task>, ...],
        "high_prior_tasks": [<task>, ...]
    }

Each task nests its subtasks recursively. Parent links are not stored; they
are rebuilt after loading.
"""

from __future__ import annotations

import json
import os
import shutil
from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, field_validator

from tlm.state import State, TaskState
from tlm.task import Task

logger = structlog.get_logger(__name__)


class IOResult(Enum):
    """Outcome of a file operation."""

    SUCCESS = "success"
    ERROR_OPEN = "error_open"
    ERROR_READ = "error_read"
    ERROR_WRITE = "error_write"
    ERROR_PARSE = "error_parse"

    def __bool__(self) -> bool:
        return self is IOResult.SUCCESS


class TaskDocument(BaseModel):
    """Persisted form of a task and its subtree."""

    id: str
    name: str
    description: str
    comparable_date: str
    pretty_date: str
    changes: list[TaskState] = Field(min_length=1)
    subtasks: list[TaskDocument]

    @field_validator("changes")
    @classmethod
    def _starts_opened(cls, changes: list[TaskState]) -> list[TaskState]:
        # Every history begins with the Opened record written at creation
        if changes[0].state != State.OPENED:
            raise ValueError(
                f"history must start with {State.OPENED.value}, not {changes[0].state.value}"
            )
        return changes

    @classmethod
    def from_task(cls, task: Task) -> TaskDocument:
        return cls(
            id=task.id,
            name=task.name,
            description=task.description,
            comparable_date=task.comparable_date,
            pretty_date=task.pretty_date,
            changes=list(task.changes),
            subtasks=[cls.from_task(subtask) for subtask in task.subtasks],
        )

    def to_task(self) -> Task:
        """Build the task tree. Parent links are left for rebuild_parents."""
        return Task(
            id=self.id,
            name=self.name,
            description=self.description,
            comparable_date=self.comparable_date,
            pretty_date=self.pretty_date,
            changes=list(self.changes),
            subtasks=[subtask.to_task() for subtask in self.subtasks],
        )


class ForestDocument(BaseModel):
    """The whole task file."""

    low_prior_tasks: list[TaskDocument]
    med_prior_tasks: list[TaskDocument]
    high_prior_tasks: list[TaskDocument]

    @classmethod
    def from_buckets(
        cls, high: list[Task], medium: list[Task], low: list[Task]
    ) -> ForestDocument:
        return cls(
            low_prior_tasks=[TaskDocument.from_task(t) for t in low],
            med_prior_tasks=[TaskDocument.from_task(t) for t in medium],
            high_prior_tasks=[TaskDocument.from_task(t) for t in high],
        )

    def to_json(self) -> str:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> ForestDocument:
        """Parse a task file. Raises pydantic.ValidationError when malformed."""
        return cls.model_validate_json(text)


def backup_path(path: Path) -> Path:
    """Where the previous contents go before an overwrite."""
    return path.with_name(path.name + ".backup")


def lock_path(path: Path) -> Path:
    """Advisory lock file guarding ``path`` against a second writer."""
    return path.with_name(path.name + ".lock")


def read_file(path: Path) -> str:
    """Read a UTF-8 text file. OSError and UnicodeDecodeError propagate."""
    with open(path, encoding="utf-8") as f:
        return f.read()


def backup_file(path: Path) -> IOResult:
    """Copy ``path`` to its backup sibling.

    Nothing to back up (no file yet) counts as success.
    """
    if not path.exists():
        return IOResult.SUCCESS

    target = backup_path(path)
    if target.is_dir():
        # copy2 would put the copy inside the directory
        logger.error("backup_write_failed", path=str(target), error="is a directory")
        return IOResult.ERROR_WRITE

    try:
        shutil.copy2(path, target)
    except OSError as e:
        if e.filename == str(path):
            logger.error("backup_read_failed", path=str(path), error=str(e))
            return IOResult.ERROR_READ
        logger.error("backup_write_failed", path=str(target), error=str(e))
        return IOResult.ERROR_WRITE

    return IOResult.SUCCESS


def write_file(path: Path, text: str) -> IOResult:
    """Write ``text`` to ``path`` without ever truncating the old file.

    The data goes to a temporary sibling first, which then replaces the
    destination.
    """
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        f = open(tmp, "w", encoding="utf-8")
    except OSError as e:
        logger.error("open_for_write_failed", path=str(tmp), error=str(e))
        return IOResult.ERROR_OPEN

    try:
        with f:
            f.write(text)
        os.replace(tmp, path)
    except OSError as e:
        logger.error("write_failed", path=str(path), error=str(e))
        tmp.unlink(missing_ok=True)
        return IOResult.ERROR_WRITE

    return IOResult.SUCCESS
