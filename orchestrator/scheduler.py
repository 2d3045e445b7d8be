"""Sequential, fail-fast orchestration of generation units."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from backup import BackupService, RetentionPolicy, RetentionSummary
from backup.errors import RetentionError
from backup.logs import BackupLogger
from backup.types import BackupStats
from core.context import RunContext
from core.paths import SnapshotPaths, ensure_directories, resolve_project_root, source_root
from core.settings import ConfigurationError, SnapshotSettings, to_environment

from .lock import LOCK_FILE_NAME, RunLock
from .logs import OrchestratorLogger
from .registry import GenerationUnit, UnitRegistry, build_registry
from .runner import UnitResult, run_unit

UnitRunner = Callable[..., UnitResult]


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class RunResult:
    timestamp: str
    units: List[str]
    status: RunStatus = RunStatus.NOT_STARTED
    completed: List[str] = field(default_factory=list)
    failed_index: Optional[int] = None
    failed_unit: Optional[str] = None
    retention: Optional[RetentionSummary] = None
    retention_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.SUCCEEDED


class Orchestrator:
    """Run the configured generation units in order, stopping at the first failure."""

    def __init__(
        self,
        settings: SnapshotSettings,
        *,
        paths: Optional[SnapshotPaths] = None,
        registry: Optional[UnitRegistry] = None,
        logger: Optional[OrchestratorLogger] = None,
        backup_logger: Optional[BackupLogger] = None,
        runner: UnitRunner = run_unit,
        project_root: Optional[Path] = None,
        config_path: Optional[Path] = None,
    ) -> None:
        self._settings = settings
        self._config_path = config_path
        self._project_root = project_root or resolve_project_root()
        self._paths = paths or SnapshotPaths.from_settings(settings, project_root=self._project_root)
        self._registry = registry or build_registry(settings, project_root=self._project_root)
        self._logger = logger or OrchestratorLogger(self._paths.log_dir)
        self._backups = BackupService(
            self._paths,
            policy=RetentionPolicy(settings.backup_retention_days),
            logger=backup_logger,
        )
        self._runner = runner

    # ------------------------------------------------------------------
    @property
    def paths(self) -> SnapshotPaths:
        return self._paths

    @property
    def registry(self) -> UnitRegistry:
        return self._registry

    @property
    def backups(self) -> BackupService:
        return self._backups

    def units(self) -> List[GenerationUnit]:
        return list(self._registry.all_units().values())

    def lock(self) -> RunLock:
        return RunLock(self._paths.machine_root / LOCK_FILE_NAME)

    def unit_environment(self) -> Dict[str, str]:
        """Environment for child units so they resolve the same directories."""

        env = dict(os.environ)
        env.update(to_environment(self._settings))
        env["DOTSNAPSHOT_HOME"] = str(self._project_root)
        if self._config_path is not None:
            env["DOTSNAPSHOT_CONFIG"] = str(self._config_path)
        python_path = env.get("PYTHONPATH")
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(source_root()), python_path]))
        return env

    # ------------------------------------------------------------------
    def run(
        self,
        names: Optional[Sequence[str]] = None,
        *,
        backup_enabled: bool = True,
        timestamp: Optional[str] = None,
        apply_retention: Optional[bool] = None,
        now: Optional[datetime] = None,
        forward_timestamp: bool = True,
    ) -> RunResult:
        """Execute ``names`` (default: every configured unit) in order.

        ``now`` is the reference time for the retention sweep only; the run
        timestamp is taken from the clock unless ``timestamp`` is supplied.
        Validation, configuration and lock errors propagate before any unit
        runs. A failing unit ends the run with ``RunStatus.FAILED``.
        """

        selected = list(names) if names is not None else self._registry.names()
        if not selected:
            raise ConfigurationError("No generation units are configured")
        units = self._registry.validate_all(selected)
        context = RunContext.create(self._paths, backup_enabled=backup_enabled, timestamp=timestamp)
        if apply_retention is None:
            apply_retention = backup_enabled

        ensure_directories(self._paths, include_backups=backup_enabled)
        result = RunResult(timestamp=context.timestamp, units=[unit.name for unit in units])
        env = self.unit_environment()

        with self.lock():
            result.status = RunStatus.RUNNING
            self._logger.log_run(
                "run_start",
                True,
                f"Starting dotsnapshot run {context.timestamp} for {self._paths.machine_id}",
                level="STEP",
                timestamp=context.timestamp,
                backup_enabled=backup_enabled,
                units=result.units,
                machine_root=str(self._paths.machine_root),
            )
            for index, unit in enumerate(units):
                outcome = self._runner(unit, context, logger=self._logger, env=env, forward_timestamp=forward_timestamp)
                if not outcome.ok:
                    result.status = RunStatus.FAILED
                    result.failed_index = index
                    result.failed_unit = unit.name
                    self._logger.log_run(
                        "run_failed",
                        False,
                        f"Run {context.timestamp} stopped: {unit.display_name} failed ({outcome.error})",
                        level="ERROR",
                        failed_index=index,
                        failed_unit=unit.name,
                        completed=result.completed,
                    )
                    return result
                result.completed.append(unit.name)

            result.status = RunStatus.SUCCEEDED
            if apply_retention:
                self._sweep(result, now=now)
            self._logger.log_run(
                "run_complete",
                True,
                f"All {len(result.completed)} generation unit(s) completed",
                level="SUCCESS",
                timestamp=context.timestamp,
                completed=result.completed,
            )
        return result

    def run_single(self, name: str, *, timestamp: Optional[str] = None) -> RunResult:
        """Run one unit with backups disabled and no retention sweep."""

        return self.run(
            [name],
            backup_enabled=False,
            timestamp=timestamp,
            apply_retention=False,
            forward_timestamp=timestamp is not None,
        )

    # ------------------------------------------------------------------
    def cleanup(self, *, now: Optional[datetime] = None) -> RetentionSummary:
        ensure_directories(self._paths, include_backups=False)
        with self.lock():
            return self._backups.cleanup(now=now)

    def stats(self, *, limit: int = 5) -> BackupStats:
        return self._backups.stats(limit=limit)

    # ------------------------------------------------------------------
    def _sweep(self, result: RunResult, *, now: Optional[datetime]) -> None:
        try:
            result.retention = self._backups.cleanup(now=now)
        except (RetentionError, OSError) as exc:
            result.retention_error = str(exc)
            self._logger.log_event(
                level="WARNING",
                event="retention_skipped",
                unit=None,
                phase="retention",
                ok=False,
                message=f"Backup retention did not complete: {exc}",
                data={"err": type(exc).__name__, "err_msg": str(exc)},
            )


__all__ = ["Orchestrator", "RunResult", "RunStatus"]
