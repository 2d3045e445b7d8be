"""Common dataclasses shared across backup modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List


@dataclass(slots=True)
class RetentionSummary:
    """Outcome of one sweep over the backup root."""

    examined: int = 0
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    unknown_age: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def kept_count(self) -> int:
        return len(self.kept)


@dataclass(slots=True)
class BackupRunInfo:
    name: str
    path: Path
    modified: datetime
    size_bytes: int


@dataclass(slots=True)
class BackupStats:
    backup_root: Path
    run_count: int
    total_bytes: int
    recent: List[BackupRunInfo] = field(default_factory=list)


__all__ = [
    "BackupRunInfo",
    "BackupStats",
    "RetentionSummary",
]
