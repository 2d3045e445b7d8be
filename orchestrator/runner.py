"""Child process execution for generation units."""
from __future__ import annotations

import subprocess
import sys
import time
from dataclasses import dataclass
from typing import List, Mapping, Optional

from core.context import RunContext

from .logs import OrchestratorLogger
from .registry import GenerationUnit


@dataclass(slots=True)
class UnitResult:
    unit: str
    returncode: Optional[int]
    duration_s: float
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


def build_command(unit: GenerationUnit, *, backup_enabled: bool, timestamp: Optional[str]) -> List[str]:
    """Argument vector for a unit: executable, backup flag, optional run timestamp.

    Python units are started with the running interpreter so they see the
    same installed dependencies as the orchestrator.
    """

    command = [str(unit.executable), "true" if backup_enabled else "false"]
    if unit.executable.suffix == ".py":
        command.insert(0, sys.executable)
    if timestamp is not None:
        command.append(timestamp)
    return command


def run_unit(
    unit: GenerationUnit,
    context: RunContext,
    *,
    logger: OrchestratorLogger,
    env: Optional[Mapping[str, str]] = None,
    forward_timestamp: bool = True,
) -> UnitResult:
    """Run a unit to completion. The unit's exit status is the only signal consulted."""

    command = build_command(
        unit,
        backup_enabled=context.backup_enabled,
        timestamp=context.timestamp if forward_timestamp else None,
    )
    logger.log_unit(
        unit.name,
        "start",
        True,
        f"Running {unit.display_name}",
        level="STEP",
        command=command,
    )
    started = time.monotonic()
    try:
        completed = subprocess.run(command, env=dict(env) if env is not None else None, check=False)
    except OSError as exc:
        duration = time.monotonic() - started
        logger.log_error(unit.name, "unit", exc, f"Failed to launch {unit.display_name}: {exc}")
        return UnitResult(unit=unit.name, returncode=None, duration_s=duration, error=str(exc))

    duration = time.monotonic() - started
    result = UnitResult(unit=unit.name, returncode=completed.returncode, duration_s=duration)
    if result.ok:
        logger.log_unit(
            unit.name,
            "complete",
            True,
            f"{unit.display_name} completed",
            level="SUCCESS",
            duration_s=round(duration, 3),
        )
    else:
        result.error = f"exit status {completed.returncode}"
        logger.log_unit(
            unit.name,
            "failed",
            False,
            f"{unit.display_name} failed with exit status {completed.returncode}",
            level="ERROR",
            returncode=completed.returncode,
            duration_s=round(duration, 3),
        )
    return result


__all__ = ["UnitResult", "build_command", "run_unit"]
