"""Runtime shared by every generation unit executable.

A unit is started as ``<executable> <"true"|"false"> [RunTimestamp]``. The
session parses that contract, loads the effective settings (the orchestrator
forwards them through ``DSNP_*_ENV`` variables), resolves the same directory
tree as the orchestrator, and offers the handful of file and command helpers
the built-in units need.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, TextIO

from backup import BackupCaptureError, BackupService, RetentionPolicy
from backup.logs import BackupLogger
from core.context import RunContext
from core.logging_utils import configure_logging, log_step, log_success
from core.paths import SnapshotPaths, ensure_directories, resolve_project_root
from core.settings import ENV_OVERRIDES, ConfigurationError, SnapshotSettings, load_settings

_BOOL_ARGS = {"true": True, "false": False}


class UnitFailure(RuntimeError):
    """Raised by a unit body to end the unit with a non-zero exit status."""


def parse_unit_argv(argv: Sequence[str]) -> tuple[bool, Optional[str]]:
    """Return ``(backup_enabled, timestamp)`` from a unit's arguments."""

    if len(argv) > 2:
        raise ConfigurationError(f"Unexpected unit arguments: {' '.join(argv[2:])}")
    backup_arg = argv[0] if argv else "false"
    try:
        backup_enabled = _BOOL_ARGS[backup_arg.lower()]
    except KeyError as exc:
        raise ConfigurationError(f"Backup flag must be 'true' or 'false', got {backup_arg!r}") from exc
    timestamp = argv[1] if len(argv) > 1 and argv[1] else None
    return backup_enabled, timestamp


@dataclass(slots=True)
class UnitSession:
    name: str
    settings: SnapshotSettings
    context: RunContext
    backups: BackupService
    logger: logging.Logger

    @classmethod
    def from_argv(
        cls,
        name: str,
        argv: Optional[Sequence[str]] = None,
        *,
        project_root: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        stream: Optional[TextIO] = None,
    ) -> "UnitSession":
        args = list(sys.argv[1:] if argv is None else argv)
        backup_enabled, timestamp = parse_unit_argv(args)
        env = os.environ if environ is None else environ
        root = project_root or resolve_project_root()
        settings = load_settings(root, environ=env)
        paths = SnapshotPaths.from_settings(settings, project_root=root)
        context = RunContext.create(paths, backup_enabled=backup_enabled, timestamp=timestamp)

        configure_logging(
            paths.log_dir,
            f"{name}.log",
            level=settings.logging.level,
            color=settings.logging.color,
            stream=stream,
        )
        logger = logging.getLogger(f"dotsnapshot.units.{name}")
        session = cls(
            name=name,
            settings=settings,
            context=context,
            backups=BackupService(
                paths,
                policy=RetentionPolicy(settings.backup_retention_days),
                logger=BackupLogger(paths.log_dir),
            ),
            logger=logger,
        )
        session._banner(env)
        ensure_directories(paths, include_backups=backup_enabled)
        return session

    # ------------------------------------------------------------------
    @property
    def paths(self) -> SnapshotPaths:
        return self.context.paths

    def _banner(self, environ: Mapping[str, str]) -> None:
        overridden = sorted(key for variable, key in ENV_OVERRIDES.items() if environ.get(variable))
        self.logger.info("Starting %s", self.name)
        self.logger.info("Machine name: %s", self.paths.machine_id)
        self.logger.info("Snapshot directory: %s", self.paths.snapshot_root)
        self.logger.info("Latest directory: %s", self.paths.latest_dir)
        self.logger.info("Logs directory: %s", self.paths.log_dir)
        self.logger.info("Backup retention period: %s days", self.settings.backup_retention_days)
        if overridden:
            self.logger.info("Overridden by environment: %s", ", ".join(overridden))
        if self.context.backup_enabled:
            self.logger.info("Backup directory: %s", self.paths.backup_root)
            self.logger.info("Backup run ID: %s", self.context.timestamp)

    # ------------------------------------------------------------------
    def artifact_path(self, artifact_name: str) -> Path:
        return self.paths.latest_dir / artifact_name

    def prepare_artifact(self, artifact_name: str) -> Path:
        """Capture the previous artifact (when backups are on), then remove it."""

        path = self.artifact_path(artifact_name)
        self.backups.capture(path, artifact_name, self.context)
        if path.exists():
            path.unlink()
            self.logger.info("Removed existing %s", artifact_name)
        return path

    def require_command(self, label: str, command: str) -> str:
        resolved = shutil.which(command)
        if resolved is None:
            raise UnitFailure(f"{label} is not installed or not in PATH ({command})")
        self.logger.info("%s found: %s", label, resolved)
        return resolved

    def run_command(self, argv: Sequence[str]) -> subprocess.CompletedProcess:
        self.logger.info("Running: %s", " ".join(argv))
        try:
            completed = subprocess.run(list(argv), capture_output=True, text=True, check=False)
        except OSError as exc:
            raise UnitFailure(f"Could not run {argv[0]}: {exc}") from exc
        if completed.returncode != 0:
            detail = (completed.stderr or "").strip()
            raise UnitFailure(
                f"{argv[0]} exited with status {completed.returncode}" + (f": {detail}" if detail else "")
            )
        return completed

    def write_command_output(self, artifact_name: str, argv: Sequence[str]) -> Path:
        """Replace an artifact with the standard output of ``argv``."""

        path = self.prepare_artifact(artifact_name)
        completed = self.run_command(argv)
        path.write_text(completed.stdout, encoding="utf-8")
        return path

    def copy_first_existing(self, artifact_name: str, candidates: Iterable[Path]) -> Path:
        """Replace an artifact with a copy of the first candidate that exists."""

        options: List[Path] = [Path(candidate).expanduser() for candidate in candidates]
        source = next((candidate for candidate in options if candidate.is_file()), None)
        if source is None:
            searched = ", ".join(str(candidate) for candidate in options)
            raise UnitFailure(f"No source file found for {artifact_name} (searched: {searched})")
        path = self.prepare_artifact(artifact_name)
        self.logger.info("Copying: %s -> %s", source, path)
        try:
            shutil.copy2(source, path)
        except OSError as exc:
            raise UnitFailure(f"Could not copy {source}: {exc}") from exc
        return path

    def validate_artifact(self, path: Path) -> None:
        if not path.is_file():
            raise UnitFailure(f"{path.name} was not created")
        if path.stat().st_size == 0:
            self.logger.warning("%s is empty", path.name)
            return
        log_success(self.logger, "%s validated successfully", path.name)

    def check_json(self, path: Path) -> bool:
        """Warn, without failing, when an artifact is not valid JSON."""

        try:
            json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            self.logger.warning("%s may not be valid JSON: %s", path.name, exc)
            return False
        log_success(self.logger, "%s is valid JSON", path.name)
        return True

    # ------------------------------------------------------------------
    @classmethod
    def main(
        cls,
        name: str,
        body: Callable[["UnitSession"], None],
        argv: Optional[Sequence[str]] = None,
        **kwargs,
    ) -> int:
        """Run ``body`` inside a session and translate failures into exit status 1."""

        logger = logging.getLogger(f"dotsnapshot.units.{name}")
        try:
            session = cls.from_argv(name, argv, **kwargs)
            log_step(session.logger, "Starting %s snapshot", name)
            body(session)
        except ConfigurationError as exc:
            logger.error("Configuration error: %s", exc)
            return 1
        except (UnitFailure, BackupCaptureError) as exc:
            logger.error("%s failed: %s", name, exc)
            return 1
        except OSError as exc:
            logger.error("%s failed on the filesystem: %s", name, exc)
            return 1
        log_success(session.logger, "%s snapshot completed", name)
        return 0


__all__ = ["UnitFailure", "UnitSession", "parse_unit_argv"]
