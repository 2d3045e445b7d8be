"""Structured logging helpers for the orchestrator."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from core.logging_utils import STEP, SUCCESS

LOGGER = logging.getLogger("dotsnapshot.orchestrator")

_LEVELS = {
    "INFO": logging.INFO,
    "STEP": STEP,
    "SUCCESS": SUCCESS,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class OrchestratorLogger:
    """Write structured JSONL events for the orchestrator."""

    def __init__(self, log_dir: Path) -> None:
        self._log_path = Path(log_dir) / "orchestrator.jsonl"
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    @property
    def log_path(self) -> Path:
        return self._log_path

    # ------------------------------------------------------------------
    def log_event(
        self,
        *,
        level: str,
        event: str,
        unit: Optional[str],
        phase: str,
        ok: bool,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "event": event,
            "unit": unit,
            "phase": phase,
            "ok": ok,
        }
        if data:
            payload.update(data)
        line = json.dumps(payload, sort_keys=True, default=str)
        with self._lock:
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        LOGGER.log(_LEVELS.get(level, logging.INFO), "%s", message)

    # ------------------------------------------------------------------
    def log_run(self, event: str, ok: bool, message: str, *, level: str = "INFO", **data: Any) -> None:
        self.log_event(level=level, event=event, unit=None, phase="run", ok=ok, message=message, data=data)

    def log_unit(self, unit: str, phase: str, ok: bool, message: str, *, level: str = "INFO", **data: Any) -> None:
        self.log_event(level=level, event=f"unit_{phase}", unit=unit, phase=phase, ok=ok, message=message, data=data)

    def log_error(self, unit: Optional[str], phase: str, err: Exception, message: str, **data: Any) -> None:
        payload = dict(data)
        payload["err"] = type(err).__name__
        payload["err_msg"] = str(err)
        self.log_event(
            level="ERROR",
            event=f"{phase}_error",
            unit=unit,
            phase=phase,
            ok=False,
            message=message,
            data=payload,
        )


__all__ = ["OrchestratorLogger"]
