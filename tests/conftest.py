from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import pytest

from core.logging_utils import ROOT_LOGGER_NAME
from core.paths import SnapshotPaths, resolve_paths
from core.settings import SnapshotSettings


@pytest.fixture(autouse=True)
def _detach_log_handlers():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class UnitScripts:
    """Writes small shell generation units that record how they were invoked."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.record = root / "invocations.log"
        (root / "units").mkdir(parents=True, exist_ok=True)

    def make(self, name: str, *, exit_code: int = 0, body: str = "", executable: bool = True) -> Dict[str, Any]:
        script = self.root / "units" / f"{name}.sh"
        script.write_text(
            f'#!/bin/sh\necho "{name} $*" >> "{self.record}"\n{body}\nexit {exit_code}\n',
            encoding="utf-8",
        )
        script.chmod(0o755 if executable else 0o644)
        return {
            "name": name,
            "display_name": name.title(),
            "description": f"{name} test unit",
            "executable": str(script),
        }

    def invocations(self) -> List[List[str]]:
        if not self.record.exists():
            return []
        return [line.split() for line in self.record.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def unit_scripts(tmp_path: Path) -> UnitScripts:
    return UnitScripts(tmp_path)


@pytest.fixture
def snapshot_paths(tmp_path: Path) -> SnapshotPaths:
    return resolve_paths(tmp_path / "snapshots", "testbox", True, tmp_path / "logs")


def build_settings(tmp_path: Path, generators: List[Dict[str, Any]], **values: Any) -> SnapshotSettings:
    payload: Dict[str, Any] = {
        "snapshot_target_dir": str(tmp_path / "snapshots"),
        "backup_retention_days": 30,
        "logs_dir": str(tmp_path / "logs"),
        "generators": generators,
    }
    payload.update(values)
    return SnapshotSettings.model_validate(payload)


@pytest.fixture
def make_settings(tmp_path: Path):
    def _make(generators: List[Dict[str, Any]], **values: Any) -> SnapshotSettings:
        return build_settings(tmp_path, generators, **values)

    return _make
