"""Retention policy enforcement for backups."""
from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from core.settings import ConfigurationError
from core.timestamps import parse_run_timestamp

from .errors import RetentionError
from .logs import BackupLogger
from .types import RetentionSummary

SECONDS_PER_DAY = 86400


@dataclass(frozen=True, slots=True)
class RetentionPolicy:
    retention_days: int = 30

    def __post_init__(self) -> None:
        days = self.retention_days
        if days is None or isinstance(days, bool) or not isinstance(days, int):
            raise ConfigurationError(f"Retention days must be a whole number, got {days!r}")
        if days < 0:
            raise ConfigurationError(f"Retention days must not be negative, got {days}")

    @property
    def window_seconds(self) -> int:
        return self.retention_days * SECONDS_PER_DAY

    def cutoff(self, now: float) -> float:
        return now - self.window_seconds


def _format_epoch(value: float) -> str:
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M:%S")


def _modification_time(path: Path) -> Optional[float]:
    try:
        mtime = path.stat().st_mtime
    except OSError:
        return None
    # A zero mtime is what broken or synthetic filesystems report.
    return mtime or None


def backup_age(path: Path) -> Tuple[Optional[float], str]:
    """Return ``(epoch, source)`` for a backup run directory.

    The directory name is parsed first; the modification time is the fallback.
    ``source`` is ``"name"``, ``"mtime"`` or ``"unknown"``.
    """

    parsed = parse_run_timestamp(path.name)
    if parsed is not None:
        return parsed, "name"
    mtime = _modification_time(path)
    if mtime is not None:
        return mtime, "mtime"
    return None, "unknown"


def _list_run_dirs(base: Path) -> List[Path]:
    try:
        children = sorted(base.iterdir())
    except OSError as exc:
        raise RetentionError(f"Unable to read backup root {base}: {exc}") from exc
    return [child for child in children if child.is_dir() and not child.is_symlink()]


def apply_retention(
    backup_root: Path,
    policy: RetentionPolicy,
    *,
    logger: BackupLogger,
    now: Optional[datetime] = None,
) -> RetentionSummary:
    """Delete backup run directories older than the retention window.

    Directories exactly at the cutoff are kept. Directories of unknown age are
    always kept. A failed deletion is logged and the sweep moves on.
    """

    base = Path(backup_root)
    summary = RetentionSummary()
    logger.step(
        "retention_start",
        "Starting backup cleanup process...",
        retention_days=policy.retention_days,
        backup_root=str(base),
    )
    if not base.exists():
        logger.info("retention_skipped", "Backup directory does not exist, nothing to clean", reason="missing_root")
        return summary

    now_ts = (now or datetime.now()).timestamp()
    cutoff = policy.cutoff(now_ts)
    logger.info(
        "retention_cutoff",
        f"Cutoff time: {_format_epoch(cutoff)} (backups older than this will be removed)",
        now=_format_epoch(now_ts),
        cutoff=_format_epoch(cutoff),
    )

    run_dirs = _list_run_dirs(base)
    summary.examined = len(run_dirs)
    logger.info("retention_scan", f"Found {len(run_dirs)} backup directories to check", count=len(run_dirs))

    for run_dir in run_dirs:
        name = run_dir.name
        created, source = backup_age(run_dir)
        if created is None:
            logger.warning("retention_unknown_age", f"Could not determine age of backup directory: {name}", id=name)
            summary.kept.append(name)
            summary.unknown_age.append(name)
            continue

        age_days = int((now_ts - created) // SECONDS_PER_DAY)
        details = f"(age: {age_days} days, created: {_format_epoch(created)})"
        if created < cutoff:
            logger.info("retention_remove", f"Removing old backup: {name} {details}", id=name, age_source=source)
            try:
                shutil.rmtree(run_dir)
            except OSError as exc:
                logger.error("retention_remove_failed", f"Failed to remove backup: {name}: {exc}", id=name)
                summary.failed.append(name)
                continue
            logger.success("backup_removed", f"Successfully removed backup: {name}", id=name, reason="retention")
            summary.removed.append(name)
        else:
            logger.info("retention_keep", f"Keeping backup: {name} {details}", id=name, age_source=source)
            summary.kept.append(name)

    logger.event(
        event="retention_applied",
        phase="retention",
        ok=not summary.failed,
        message=(
            f"Backup cleanup completed: checked {summary.examined}, "
            f"removed {summary.removed_count}, kept {summary.kept_count}"
        ),
        examined=summary.examined,
        removed=summary.removed_count,
        kept=summary.kept_count,
        failed=len(summary.failed),
    )
    return summary


__all__ = ["RetentionPolicy", "apply_retention", "backup_age"]
