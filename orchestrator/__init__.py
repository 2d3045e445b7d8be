"""Generation unit orchestration for dotsnapshot."""

from .errors import OrchestratorError, RunLockError, UnitValidationError
from .lock import RunLock
from .registry import GenerationUnit, UnitRegistry, build_registry
from .runner import UnitResult, run_unit
from .scheduler import Orchestrator, RunResult, RunStatus

__all__ = [
    "GenerationUnit",
    "Orchestrator",
    "OrchestratorError",
    "RunLock",
    "RunLockError",
    "RunResult",
    "RunStatus",
    "UnitRegistry",
    "UnitResult",
    "UnitValidationError",
    "build_registry",
    "run_unit",
]
