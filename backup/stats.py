"""Overview of the backup root: counts, sizes and the newest runs."""
from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from core.timestamps import is_run_timestamp

from .logs import BackupLogger
from .types import BackupRunInfo, BackupStats

_UNITS = ("B", "K", "M", "G", "T")


def format_size(num_bytes: int) -> str:
    """Render a byte count the way ``du -h`` does."""
    value = float(num_bytes)
    for unit in _UNITS:
        if value < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(value)}{unit}"
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{num_bytes}B"


def _tree_size(path: Path) -> int:
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.lstat(os.path.join(root, name)).st_size
            except OSError:
                continue
    return total


def get_backup_stats(backup_root: Path, *, limit: int = 5) -> BackupStats:
    base = Path(backup_root)
    if not base.is_dir():
        return BackupStats(backup_root=base, run_count=0, total_bytes=0)
    run_dirs = [child for child in base.iterdir() if child.is_dir() and not child.is_symlink()]
    sizes = {child.name: _tree_size(child) for child in run_dirs}
    recent = []
    for child in sorted((d for d in run_dirs if is_run_timestamp(d.name)), key=lambda d: d.name, reverse=True)[: max(limit, 0)]:
        try:
            modified = datetime.fromtimestamp(child.stat().st_mtime)
        except OSError:
            continue
        recent.append(BackupRunInfo(name=child.name, path=child, modified=modified, size_bytes=sizes[child.name]))
    return BackupStats(
        backup_root=base,
        run_count=len(run_dirs),
        total_bytes=sum(sizes.values()),
        recent=recent,
    )


def log_backup_stats(stats: BackupStats, *, machine_id: str, logger: BackupLogger) -> None:
    logger.info(
        "backup_stats",
        f"Backup statistics for machine '{machine_id}': {stats.run_count} backup directories, "
        f"{format_size(stats.total_bytes)} total",
        runs=stats.run_count,
        total_bytes=stats.total_bytes,
    )
    for info in stats.recent:
        logger.info(
            "backup_recent",
            f"    - {info.name} ({info.modified:%Y-%m-%d %H:%M:%S}, {format_size(info.size_bytes)})",
            id=info.name,
            size=info.size_bytes,
        )


__all__ = ["format_size", "get_backup_stats", "log_backup_stats"]
