from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

__all__ = [
    "SnapshotPaths",
    "ensure_directories",
    "get_default_settings_paths",
    "machine_identifier",
    "resolve_against",
    "resolve_paths",
    "resolve_project_root",
    "source_root",
]

LOGGER = logging.getLogger("dotsnapshot.paths")

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_UNKNOWN_MACHINE = "unknown-machine"

LATEST_DIR_NAME = "latest"
BACKUPS_DIR_NAME = "backups"


def _expand_path(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value)))


def resolve_project_root() -> Path:
    """Return the directory relative configuration values are resolved against."""

    env_home = os.environ.get("DOTSNAPSHOT_HOME")
    if env_home:
        return _expand_path(env_home).resolve()
    return _PROJECT_ROOT


def source_root() -> Path:
    """Directory holding the dotsnapshot packages, for child interpreters."""

    return _PROJECT_ROOT


def resolve_against(value: str | os.PathLike[str], root: Path) -> Path:
    """Use absolute *value* verbatim, otherwise anchor it at *root*."""

    candidate = _expand_path(str(value))
    if candidate.is_absolute():
        return candidate
    return root / candidate


def machine_identifier() -> str:
    try:
        name = socket.gethostname().strip()
    except OSError:
        return _UNKNOWN_MACHINE
    return name or _UNKNOWN_MACHINE


@dataclass(frozen=True, slots=True)
class SnapshotPaths:
    """Every directory a run writes to, fully resolved."""

    snapshot_root: Path
    machine_root: Path
    latest_dir: Path
    backup_root: Path
    log_dir: Path
    machine_id: str

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        *,
        machine_id: Optional[str] = None,
        project_root: Optional[Path] = None,
    ) -> "SnapshotPaths":
        return resolve_paths(
            settings.snapshot_target_dir,
            machine_id or machine_identifier(),
            settings.use_machine_directories,
            settings.logs_dir,
            project_root=project_root,
        )

    def backup_run_dir(self, timestamp: str) -> Path:
        return self.backup_root / timestamp

    def as_dict(self) -> Mapping[str, str]:
        return {
            "snapshot_root": str(self.snapshot_root),
            "machine_root": str(self.machine_root),
            "latest_dir": str(self.latest_dir),
            "backup_root": str(self.backup_root),
            "log_dir": str(self.log_dir),
            "machine_id": self.machine_id,
        }


def resolve_paths(
    target_directory: str | os.PathLike[str],
    machine_id: str,
    use_machine_directories: bool,
    log_directory: str | os.PathLike[str],
    *,
    project_root: Optional[Path] = None,
) -> SnapshotPaths:
    """Compute the snapshot directory tree. Performs no I/O."""

    root = project_root or resolve_project_root()
    snapshot_root = resolve_against(target_directory, root)
    machine_root = snapshot_root / machine_id if use_machine_directories else snapshot_root
    return SnapshotPaths(
        snapshot_root=snapshot_root,
        machine_root=machine_root,
        latest_dir=machine_root / LATEST_DIR_NAME,
        backup_root=machine_root / BACKUPS_DIR_NAME,
        log_dir=resolve_against(log_directory, root),
        machine_id=machine_id,
    )


def ensure_directories(paths: SnapshotPaths, *, include_backups: bool) -> None:
    """Create the directory tree; existing directories are left untouched."""

    directories = [paths.snapshot_root, paths.machine_root, paths.latest_dir]
    if include_backups:
        directories.append(paths.backup_root)
    directories.append(paths.log_dir)
    for directory in directories:
        if directory.is_dir():
            LOGGER.debug("Directory already exists: %s", directory)
            continue
        directory.mkdir(parents=True, exist_ok=True)
        LOGGER.info("Created directory: %s", directory)


def get_default_settings_paths(project_root: Optional[Path] = None) -> list[Path]:
    """Return the search order for settings.json files."""

    paths: list[Path] = []
    env_config = os.environ.get("DOTSNAPSHOT_CONFIG")
    if env_config:
        paths.append(_expand_path(env_config))
    paths.append(Path("/usr/local/etc/dotsnapshot/settings.json"))
    paths.append(Path("/opt/homebrew/etc/dotsnapshot/settings.json"))
    paths.append((project_root or resolve_project_root()) / "config" / "settings.json")
    return paths
