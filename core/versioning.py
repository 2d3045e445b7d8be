"""Helpers for resolving the running dotsnapshot version."""
from __future__ import annotations

from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Optional

_DISTRIBUTION = "dotsnapshot"
_VERSION_FILE = Path(__file__).resolve().parent.parent / "VERSION"


def _load_version_from_metadata() -> Optional[str]:
    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return None


def _load_version_from_file() -> Optional[str]:
    """Read the repository ``VERSION`` file used by source checkouts."""
    try:
        text = _VERSION_FILE.read_text(encoding="utf-8")
    except OSError:
        return None
    version = "".join(text.split())
    return version or None


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Return the dotsnapshot version string.

    Installed distributions report their metadata version. Source checkouts
    that were never installed fall back to the ``VERSION`` file and ultimately
    to ``"unknown"``, which is what ``--version`` prints in that case.
    """

    version = _load_version_from_metadata()
    if version:
        return version
    version = _load_version_from_file()
    if version:
        return version
    return "unknown"


__all__ = ["get_app_version"]
