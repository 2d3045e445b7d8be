"""Structured logging helpers for backup operations."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from core.logging_utils import STEP, SUCCESS

LOGGER = logging.getLogger("dotsnapshot.backup")


class BackupLogger:
    """Write structured JSONL entries for backup related events.

    Every entry is mirrored to the leveled ``dotsnapshot.backup`` logger so the
    operator sees a readable line on the console and in the per-run log file.
    """

    def __init__(self, log_dir: Path) -> None:
        self._log_path = Path(log_dir) / "backup.jsonl"
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    @property
    def log_path(self) -> Path:
        return self._log_path

    # ------------------------------------------------------------------
    def _write(self, payload: Dict[str, Any], *, level: int, message: Optional[str]) -> None:
        payload.setdefault("ts", datetime.now(timezone.utc).isoformat())
        line = json.dumps(payload, sort_keys=True, default=str)
        with self._lock:
            with self._log_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        LOGGER.log(level, "%s", message or payload.get("event"))

    def event(self, *, event: str, phase: str, ok: bool, message: Optional[str] = None, **extra: Any) -> None:
        payload = {
            "event": event,
            "phase": phase,
            "ok": bool(ok),
        }
        if extra:
            payload.update(extra)
        level = SUCCESS if ok else logging.ERROR
        self._write(payload, level=level, message=message)

    def step(self, event: str, message: Optional[str] = None, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": True}, level=STEP, message=message)

    def info(self, event: str, message: Optional[str] = None, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": True}, level=logging.INFO, message=message)

    def success(self, event: str, message: Optional[str] = None, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": True}, level=SUCCESS, message=message)

    def warning(self, event: str, message: Optional[str] = None, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": False}, level=logging.WARNING, message=message)

    def error(self, event: str, message: Optional[str] = None, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": False}, level=logging.ERROR, message=message)


__all__ = ["BackupLogger"]
