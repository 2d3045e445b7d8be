"""Backup capture and retention for dotsnapshot."""
from __future__ import annotations

from .api import BackupService
from .capture import capture_artifact
from .errors import BackupCaptureError, BackupError, RetentionError
from .retention import RetentionPolicy, apply_retention
from .types import BackupStats, RetentionSummary

__all__ = [
    "BackupCaptureError",
    "BackupError",
    "BackupService",
    "BackupStats",
    "RetentionError",
    "RetentionPolicy",
    "RetentionSummary",
    "apply_retention",
    "capture_artifact",
]
