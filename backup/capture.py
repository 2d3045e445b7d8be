"""Preserve an artifact's previous version before a unit overwrites it."""
from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Optional

from core.context import RunContext

from .errors import BackupCaptureError
from .logs import BackupLogger


def _validate_name(artifact_name: str) -> None:
    if not artifact_name or artifact_name in {".", ".."}:
        raise BackupCaptureError(f"Invalid artifact name: {artifact_name!r}")
    if os.sep in artifact_name or (os.altsep and os.altsep in artifact_name):
        raise BackupCaptureError(f"Artifact name must be a plain file name: {artifact_name!r}")


def _copy_atomic(source: Path, dest: Path) -> None:
    partial = dest.with_name(f".{dest.name}.partial")
    try:
        shutil.copy2(source, partial)
        expected = source.stat().st_size
        actual = partial.stat().st_size
        if actual != expected:
            raise BackupCaptureError(
                f"Short copy of {source}: wrote {actual} of {expected} bytes"
            )
        os.replace(partial, dest)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise


def capture_artifact(
    artifact_path: Path,
    artifact_name: str,
    context: RunContext,
    *,
    logger: BackupLogger,
) -> Optional[Path]:
    """Copy *artifact_path* into this run's backup directory.

    Returns the path of the copy, or ``None`` when capture is disabled for the
    run or there is nothing to preserve yet. A failed copy raises
    :class:`BackupCaptureError`; the caller must not overwrite the artifact.
    """

    if not context.backup_enabled:
        return None
    _validate_name(artifact_name)
    source = Path(artifact_path)
    if not source.is_file():
        return None

    run_dir = context.backup_run_dir
    dest = run_dir / artifact_name
    logger.info(
        "capture_start",
        f"Backing up existing {artifact_name} to: {dest}",
        artifact=artifact_name,
        source=str(source),
        dest=str(dest),
        run=context.timestamp,
    )
    try:
        run_dir.mkdir(parents=True, exist_ok=True)
        _copy_atomic(source, dest)
    except BackupCaptureError as exc:
        logger.error("capture_failed", f"Backup of {artifact_name} failed: {exc}", artifact=artifact_name)
        raise
    except OSError as exc:
        logger.error("capture_failed", f"Backup of {artifact_name} failed: {exc}", artifact=artifact_name)
        raise BackupCaptureError(f"Unable to back up {source} to {dest}: {exc}") from exc
    logger.success(
        "capture_complete",
        f"Backup created successfully in: {run_dir}",
        artifact=artifact_name,
        dest=str(dest),
        size=dest.stat().st_size,
    )
    return dest


__all__ = ["capture_artifact"]
