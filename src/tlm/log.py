"""Structured logging setup for tlm.

Call configure_logging once from the entry point, then in any module::

    logger = structlog.get_logger(__name__)
    logger.warning("precondition_failed", task_id="000042")
"""

from __future__ import annotations

import logging
import sys
from typing import Literal

import structlog
from structlog.typing import Processor


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def _level_number(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(
    level: str = "WARNING",
    fmt: Literal["console", "json"] = "console",
) -> None:
    """Configure structlog to write to stderr.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        fmt: 'console' for human-readable lines, 'json' for one object per line.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
