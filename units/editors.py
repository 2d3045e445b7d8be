"""Locations of editor settings files."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

DEFAULT_DOTFILES_ROOT = "~/.dotfiles"


def user_settings_path(app_dir: str, *, home: Optional[Path] = None, platform: Optional[str] = None) -> Path:
    """Per-user ``settings.json`` of a VS Code family editor."""

    base = home or Path.home()
    platform = platform or sys.platform
    if platform == "darwin":
        return base / "Library" / "Application Support" / app_dir / "User" / "settings.json"
    return base / ".config" / app_dir / "User" / "settings.json"


def settings_candidates(
    editor: str,
    app_dir: str,
    *,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
    platform: Optional[str] = None,
) -> List[Path]:
    """Dotfiles copy first, then the editor's own user settings."""

    env = os.environ if environ is None else environ
    dotfiles = Path(env.get("DOTFILES_ROOT") or DEFAULT_DOTFILES_ROOT).expanduser()
    return [
        dotfiles / "settings" / editor / "settings.json",
        user_settings_path(app_dir, home=home, platform=platform),
    ]


__all__ = ["DEFAULT_DOTFILES_ROOT", "settings_candidates", "user_settings_path"]
