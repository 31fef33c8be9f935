"""Configuration models for tlm."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: str = "WARNING"
    format: Literal["console", "json"] = "console"


class TlmConfig(BaseModel):
    """Main configuration for tlm."""

    author: str | None = None
    task_file: str = ".tlm/tasks.json"
    backup_on_save: bool = True
    language_file: str | None = None
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> TlmConfig:
        """Load configuration from file or return defaults."""
        if path is None:
            path = CONFIG_FILE

        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = CONFIG_FILE

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(exclude_none=True), f, indent=2)


# Default config directory
TLM_DIR = Path(".tlm")
CONFIG_FILE = TLM_DIR / "config.json"
TASKS_FILE = TLM_DIR / "tasks.json"
