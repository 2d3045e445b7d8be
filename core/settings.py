from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .logging_utils import LEVEL_NAMES
from .paths import get_default_settings_paths
from .settings_schema import SETTINGS_VALIDATOR

__all__ = [
    "DEFAULT_SETTINGS",
    "ENV_OVERRIDES",
    "SETTINGS_VERSION",
    "ConfigurationError",
    "GeneratorEntry",
    "LoggingSettings",
    "SnapshotSettings",
    "load_settings",
    "merge_defaults",
    "to_environment",
]

LOGGER = logging.getLogger("dotsnapshot.settings")

SETTINGS_VERSION = 1

DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "snapshot_target_dir": ".snapshots",
    "backup_retention_days": 30,
    "logs_dir": ".logs",
    "use_machine_directories": True,
    "logging": {
        "level": "INFO",
        "color": True,
    },
    "generators": [
        {
            "name": "homebrew",
            "display_name": "Brewfile",
            "description": "Creates a snapshot of Homebrew packages (Brewfile)",
            "executable": "generators/homebrew.py",
        },
        {
            "name": "cursor_extensions",
            "display_name": "Cursor extensions",
            "description": "Creates a snapshot of installed Cursor extensions with versions",
            "executable": "generators/cursor_extensions.py",
        },
        {
            "name": "cursor_settings",
            "display_name": "Cursor settings",
            "description": "Creates a snapshot of the Cursor settings.json file",
            "executable": "generators/cursor_settings.py",
        },
        {
            "name": "vscode_extensions",
            "display_name": "VS Code extensions",
            "description": "Creates a snapshot of installed VS Code extensions with versions",
            "executable": "generators/vscode_extensions.py",
        },
        {
            "name": "vscode_settings",
            "display_name": "VS Code settings",
            "description": "Creates a snapshot of the VS Code settings.json file",
            "executable": "generators/vscode_settings.py",
        },
    ],
}

# Environment variable -> settings key. Empty values are ignored.
ENV_OVERRIDES: Dict[str, str] = {
    "DSNP_SNAPSHOT_TARGET_DIR_ENV": "snapshot_target_dir",
    "DSNP_BACKUP_RETENTION_DAYS_ENV": "backup_retention_days",
    "DSNP_LOGS_DIR_ENV": "logs_dir",
    "DSNP_USE_MACHINE_DIRECTORIES_ENV": "use_machine_directories",
}


class ConfigurationError(ValueError):
    """Raised when settings are missing, malformed or out of range."""


class GeneratorEntry(BaseModel):
    """Static definition of one generation unit."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Unique unit name used on the command line.")
    display_name: str = Field(..., min_length=1, description="Human readable name for log output.")
    description: str = Field("", description="One line summary shown by --list.")
    executable: str = Field(..., min_length=1, description="Executable path, relative to the project root.")


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    level: str = "INFO"
    color: bool = True

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        normalized = str(value).upper()
        if normalized not in LEVEL_NAMES:
            raise ValueError(f"unknown log level {value!r}")
        return normalized


class SnapshotSettings(BaseModel):
    """Validated configuration, built once per process."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    version: int = SETTINGS_VERSION
    snapshot_target_dir: str = Field(..., min_length=1)
    backup_retention_days: int = Field(..., ge=0)
    logs_dir: str = Field(..., min_length=1)
    use_machine_directories: bool = True
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    generators: List[GeneratorEntry] = Field(default_factory=list)

    @field_validator("backup_retention_days", mode="before")
    @classmethod
    def _reject_bool_days(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("retention must be a whole number of days")
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def _unique_generator_names(self) -> "SnapshotSettings":
        seen: set[str] = set()
        for entry in self.generators:
            if entry.name in seen:
                raise ValueError(f"duplicate generator name: {entry.name}")
            seen.add(entry.name)
        return self


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    def _merge(default: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in default.items():
            if isinstance(value, dict):
                current = payload.get(key)
                if isinstance(current, dict):
                    result[key] = _merge(value, current)
                else:
                    result[key] = _merge(value, {})
            elif isinstance(value, list):
                current = payload.get(key)
                result[key] = copy.deepcopy(current if isinstance(current, list) else value)
            else:
                result[key] = payload.get(key, value)
        for key, value in payload.items():
            if key not in result:
                result[key] = value
        return result

    return _merge(DEFAULT_SETTINGS, data or {})


def _read_settings_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            loaded = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Settings file {path} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Unable to read settings file {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Settings file {path} must contain a JSON object")
    return loaded


def _find_settings_file(project_root: Optional[Path], config_path: Optional[Path]) -> Optional[Path]:
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"Settings file not found: {config_path}")
        return config_path
    for candidate in get_default_settings_paths(project_root):
        if candidate.is_file():
            return candidate
    return None


def _log_unknown_keys(settings: Dict[str, Any], source: Optional[Path]) -> None:
    unknown = list(SETTINGS_VALIDATOR.unknown_keys(settings))
    if not unknown:
        return
    LOGGER.warning("Ignoring unknown settings keys in %s: %s", source or "defaults", ", ".join(unknown))


def _apply_environment(settings: Dict[str, Any], environ: Mapping[str, str]) -> None:
    for variable, key in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value is None or value == "":
            continue
        LOGGER.debug("%s overridden by %s", key, variable)
        settings[key] = value


def load_settings(
    project_root: Optional[Path] = None,
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SnapshotSettings:
    """Merge defaults, the settings file, environment and CLI overrides.

    Later sources win. The merged mapping is validated once; any problem is
    reported as :class:`ConfigurationError` before anything is written.
    """

    source = _find_settings_file(project_root, config_path)
    data: Dict[str, Any] = _read_settings_file(source) if source is not None else {}
    merged = merge_defaults(data)
    _log_unknown_keys(merged, source)
    _apply_environment(merged, os.environ if environ is None else environ)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    try:
        return SnapshotSettings.model_validate(merged)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from exc


def to_environment(settings: SnapshotSettings) -> Dict[str, str]:
    """Render the effective settings as overrides for child processes."""

    return {
        "DSNP_SNAPSHOT_TARGET_DIR_ENV": settings.snapshot_target_dir,
        "DSNP_BACKUP_RETENTION_DAYS_ENV": str(settings.backup_retention_days),
        "DSNP_LOGS_DIR_ENV": settings.logs_dir,
        "DSNP_USE_MACHINE_DIRECTORIES_ENV": "true" if settings.use_machine_directories else "false",
    }
