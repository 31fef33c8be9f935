"""Shared fixtures for tlm tests."""

from __future__ import annotations

import json
import os
from collections.abc import Generator
from datetime import datetime
from pathlib import Path

import pytest
import structlog

from tlm.manager import Priority, TaskManager
from tlm.state import State
from tlm.task import Task


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any logging configuration a test (or the CLI) applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_project(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary project directory and change to it."""
    original_dir = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_dir)


@pytest.fixture
def temp_tlm_dir(temp_project: Path) -> Path:
    """Create a temporary .tlm directory."""
    tlm_dir = temp_project / ".tlm"
    tlm_dir.mkdir()
    return tlm_dir


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed instant for deterministic timestamps."""
    return datetime(2026, 10, 19, 17, 55, 0)


@pytest.fixture
def manager(tmp_path: Path) -> TaskManager:
    """A TaskManager writing to a file under tmp_path."""
    return TaskManager(tmp_path / "tasks.json")


@pytest.fixture
def make_task(manager: TaskManager, fixed_now: datetime):
    """Factory creating tasks through the manager, optionally in a state."""

    def _make(name: str = "Task", state: State | None = None, author: str = "alice") -> Task:
        task = manager.new_task(author, name, f"{name} description", when=fixed_now)
        if state is not None and state != State.OPENED:
            task.change_state(author, "setup", state, when=fixed_now)
        return task

    return _make


@pytest.fixture
def populated_manager(manager: TaskManager, make_task) -> TaskManager:
    """Manager with one root per bucket and a two-level subtree under high."""
    root = make_task("Release")
    child = make_task("Write changelog")
    grandchild = make_task("Collect merged PRs")
    child.add_subtask(grandchild)
    root.add_subtask(child)

    manager.insert_task(Priority.HIGH, 0, root)
    manager.insert_task(Priority.MEDIUM, 0, make_task("Refactor parser"))
    manager.insert_task(Priority.LOW, 0, make_task("Tidy docs"))
    return manager


@pytest.fixture
def sample_forest_data() -> dict:
    """A task file as written by an earlier version."""
    return {
        "low_prior_tasks": [],
        "med_prior_tasks": [
            {
                "id": "000007",
                "name": "Plan sprint",
                "description": "Pick stories",
                "comparable_date": "2026.10.01.09.00.00",
                "pretty_date": "Thu Oct 01 09:00:00 2026",
                "changes": [
                    {
                        "comparable_date": "2026.10.01.09.00.00",
                        "pretty_date": "Thu Oct 01 09:00:00 2026",
                        "reason_state": "Opened task",
                        "state": "Opened",
                    },
                    {
                        "comparable_date": "2026.10.02.09.00.00",
                        "pretty_date": "Fri Oct 02 09:00:00 2026",
                        "reason": "null",
                        "state": "Working",
                        "author": "bob",
                    },
                ],
                "subtasks": [
                    {
                        "id": "000003",
                        "name": "Estimate",
                        "description": "",
                        "comparable_date": "2026.10.01.09.30.00",
                        "pretty_date": "Thu Oct 01 09:30:00 2026",
                        "changes": [
                            {
                                "comparable_date": "2026.10.01.09.30.00",
                                "pretty_date": "Thu Oct 01 09:30:00 2026",
                                "reason": "Opened task",
                                "state": "Opened",
                                "author": "bob",
                            }
                        ],
                        "subtasks": [],
                    }
                ],
            }
        ],
        "high_prior_tasks": [],
    }


@pytest.fixture
def sample_task_file(tmp_path: Path, sample_forest_data: dict) -> Path:
    """Write sample_forest_data to disk."""
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(sample_forest_data))
    return path
