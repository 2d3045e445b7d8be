#!/usr/bin/env python3
"""Snapshot the installed VS Code extensions with their versions."""
from __future__ import annotations

import sys

from units import UnitSession

ARTIFACT = "vscode_extensions"


def snapshot(session: UnitSession) -> None:
    executable = session.require_command("VS Code", "code")
    path = session.write_command_output(ARTIFACT, [executable, "--list-extensions", "--show-versions"])
    session.validate_artifact(path)
    count = sum(1 for line in path.read_text(encoding="utf-8").splitlines() if line.strip())
    session.logger.info("Snapshot contains %d VS Code extensions", count)


if __name__ == "__main__":
    sys.exit(UnitSession.main("vscode_extensions", snapshot))
