"""Per-invocation run context shared by the orchestrator, units and backups."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .paths import SnapshotPaths
from .settings import ConfigurationError
from .timestamps import is_run_timestamp, new_run_timestamp

__all__ = ["RunContext"]


@dataclass(frozen=True, slots=True)
class RunContext:
    """Run identity plus resolved directories; read-only once created."""

    timestamp: str
    backup_enabled: bool
    paths: SnapshotPaths

    @classmethod
    def create(
        cls,
        paths: SnapshotPaths,
        *,
        backup_enabled: bool,
        timestamp: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "RunContext":
        if timestamp is None:
            timestamp = new_run_timestamp(now)
        elif not is_run_timestamp(timestamp):
            raise ConfigurationError(
                f"Run timestamp {timestamp!r} does not match the YYYYMMDD_HHMMSS format"
            )
        return cls(timestamp=timestamp, backup_enabled=bool(backup_enabled), paths=paths)

    @property
    def backup_run_dir(self) -> Path:
        return self.paths.backup_run_dir(self.timestamp)
