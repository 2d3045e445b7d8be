#!/usr/bin/env python3
"""Snapshot the VS Code user settings."""
from __future__ import annotations

import sys

from units import UnitSession
from units.editors import settings_candidates

ARTIFACT = "vscode_settings.json"


def snapshot(session: UnitSession) -> None:
    path = session.copy_first_existing(ARTIFACT, settings_candidates("vscode", "Code"))
    session.validate_artifact(path)
    session.check_json(path)


if __name__ == "__main__":
    sys.exit(UnitSession.main("vscode_settings", snapshot))
