"""Run timestamp helpers shared by the orchestrator and backup modules."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

__all__ = [
    "RUN_TIMESTAMP_FORMAT",
    "is_run_timestamp",
    "new_run_timestamp",
    "parse_run_timestamp",
]

RUN_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
_RUN_TIMESTAMP_PATTERN = re.compile(r"^\d{8}_\d{6}$")


def new_run_timestamp(now: Optional[datetime] = None) -> str:
    """Return a ``YYYYMMDD_HHMMSS`` identifier in local time."""

    current = now or datetime.now()
    return current.strftime(RUN_TIMESTAMP_FORMAT)


def parse_run_timestamp(value: str) -> Optional[float]:
    """Strictly parse a run timestamp into epoch seconds.

    The value is interpreted as local time, matching :func:`new_run_timestamp`.
    Returns ``None`` when the value does not have the exact shape or names an
    impossible calendar date.
    """

    if not isinstance(value, str) or not _RUN_TIMESTAMP_PATTERN.match(value):
        return None
    try:
        parsed = datetime.strptime(value, RUN_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    try:
        return parsed.timestamp()
    except (OverflowError, OSError):
        return None


def is_run_timestamp(value: str) -> bool:
    return parse_run_timestamp(value) is not None
