"""Timestamp formatting for tasks and change records."""

from __future__ import annotations

from datetime import datetime

# Sorts chronologically as plain text
COMPARABLE_FORMAT = "%Y.%m.%d.%H.%M.%S"
PRETTY_FORMAT = "%a %b %d %H:%M:%S %Y"


def comparable_date(when: datetime | None = None) -> str:
    """Format a timestamp as YYYY.MM.DD.HH.MM.SS."""
    return (when or datetime.now()).strftime(COMPARABLE_FORMAT)


def pretty_date(when: datetime | None = None) -> str:
    """Format a timestamp for display, e.g. 'Mon Oct 19 17:55:00 2026'."""
    return (when or datetime.now()).strftime(PRETTY_FORMAT)


def stamp(when: datetime | None = None) -> tuple[str, str]:
    """Return the (comparable, pretty) pair for a single instant."""
    when = when or datetime.now()
    return comparable_date(when), pretty_date(when)
