"""Public API for backup operations."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from core.context import RunContext
from core.paths import SnapshotPaths

from .capture import capture_artifact
from .errors import BackupError
from .logs import BackupLogger
from .retention import RetentionPolicy, apply_retention
from .stats import get_backup_stats, log_backup_stats
from .types import BackupStats, RetentionSummary


class BackupService:
    """Coordinate capture, retention and statistics for one machine root."""

    def __init__(
        self,
        paths: SnapshotPaths,
        *,
        policy: RetentionPolicy,
        logger: Optional[BackupLogger] = None,
    ) -> None:
        self._paths = paths
        self._policy = policy
        self._logger = logger or BackupLogger(paths.log_dir)

    # ------------------------------------------------------------------
    @property
    def paths(self) -> SnapshotPaths:
        return self._paths

    @property
    def policy(self) -> RetentionPolicy:
        return self._policy

    @property
    def logger(self) -> BackupLogger:
        return self._logger

    # ------------------------------------------------------------------
    def capture(self, artifact_path: Path, artifact_name: str, context: RunContext) -> Optional[Path]:
        return capture_artifact(artifact_path, artifact_name, context, logger=self._logger)

    # ------------------------------------------------------------------
    def stats(self, *, limit: int = 5) -> BackupStats:
        stats = get_backup_stats(self._paths.backup_root, limit=limit)
        log_backup_stats(stats, machine_id=self._paths.machine_id, logger=self._logger)
        return stats

    # ------------------------------------------------------------------
    def apply_retention(self, *, now: Optional[datetime] = None) -> RetentionSummary:
        self._logger.info(
            "retention_policy",
            f"Retention period: {self._policy.retention_days} days",
            retention_days=self._policy.retention_days,
            backup_root=str(self._paths.backup_root),
        )
        return apply_retention(self._paths.backup_root, self._policy, logger=self._logger, now=now)

    def cleanup(self, *, now: Optional[datetime] = None) -> RetentionSummary:
        """Log statistics, then sweep. Mirrors the standalone cleanup command."""
        self.stats()
        return self.apply_retention(now=now)


__all__ = [
    "BackupError",
    "BackupService",
    "RetentionPolicy",
    "RetentionSummary",
]
