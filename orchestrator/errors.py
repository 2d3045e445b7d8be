"""Error hierarchy for orchestrated runs."""
from __future__ import annotations


class OrchestratorError(RuntimeError):
    """Base exception for orchestration failures."""


class UnitValidationError(OrchestratorError):
    """A named unit is not registered or its executable cannot be run."""

    def __init__(self, unit: str, reason: str) -> None:
        super().__init__(f"Invalid generation unit {unit!r}: {reason}")
        self.unit = unit
        self.reason = reason


class RunLockError(OrchestratorError):
    """Another invocation already holds the machine's run lock."""


__all__ = ["OrchestratorError", "RunLockError", "UnitValidationError"]
