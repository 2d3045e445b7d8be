#!/usr/bin/env python3
"""Snapshot installed Homebrew packages as a Brewfile."""
from __future__ import annotations

import sys

from units import UnitSession

ARTIFACT = "Brewfile"


def _count_entries(text: str, prefix: str) -> int:
    return sum(1 for line in text.splitlines() if line.startswith(prefix))


def snapshot(session: UnitSession) -> None:
    brew = session.require_command("Homebrew", "brew")
    path = session.prepare_artifact(ARTIFACT)
    session.run_command([brew, "bundle", "dump", "--force", "--file", str(path)])
    session.validate_artifact(path)

    text = path.read_text(encoding="utf-8")
    entries = sum(1 for line in text.splitlines() if line.strip() and not line.startswith("#"))
    session.logger.info("Brewfile contains %d package entries", entries)
    session.logger.info(
        "Formulas: %d, casks: %d, taps: %d",
        _count_entries(text, "brew "),
        _count_entries(text, "cask "),
        _count_entries(text, "tap "),
    )


if __name__ == "__main__":
    sys.exit(UnitSession.main("homebrew", snapshot))
