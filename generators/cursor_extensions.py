#!/usr/bin/env python3
"""Snapshot the installed Cursor extensions with their versions."""
from __future__ import annotations

import sys

from units import UnitSession

ARTIFACT = "cursor_extensions"


def snapshot(session: UnitSession) -> None:
    executable = session.require_command("Cursor", "cursor")
    path = session.write_command_output(ARTIFACT, [executable, "--list-extensions", "--show-versions"])
    session.validate_artifact(path)
    count = sum(1 for line in path.read_text(encoding="utf-8").splitlines() if line.strip())
    session.logger.info("Snapshot contains %d Cursor extensions", count)


if __name__ == "__main__":
    sys.exit(UnitSession.main("cursor_extensions", snapshot))
