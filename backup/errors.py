"""Error hierarchy for backup operations."""
from __future__ import annotations


class BackupError(RuntimeError):
    """Base exception for backup related failures."""


class BackupCaptureError(BackupError):
    """Raised when an artifact could not be preserved before an overwrite."""


class RetentionError(BackupError):
    """Raised when the backup root cannot be swept at all."""


__all__ = ["BackupError", "BackupCaptureError", "RetentionError"]
