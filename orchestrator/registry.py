"""Registry describing the configured generation units."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from core.paths import resolve_against, resolve_project_root
from core.settings import ConfigurationError, SnapshotSettings

from .errors import UnitValidationError


@dataclass(frozen=True, slots=True)
class GenerationUnit:
    name: str
    display_name: str
    description: str
    executable: Path


class UnitRegistry:
    """Ordered, name-keyed registry of generation units."""

    def __init__(self) -> None:
        self._units: Dict[str, GenerationUnit] = {}

    def register(self, unit: GenerationUnit) -> None:
        if unit.name in self._units:
            raise ConfigurationError(f"Generation unit already registered: {unit.name}")
        self._units[unit.name] = unit

    def get(self, name: str) -> GenerationUnit:
        try:
            return self._units[name]
        except KeyError as exc:
            raise UnitValidationError(name, "not a registered generation unit") from exc

    def names(self) -> List[str]:
        return list(self._units)

    def all_units(self) -> Dict[str, GenerationUnit]:
        return dict(self._units)

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)

    # ------------------------------------------------------------------
    def validate(self, name: str) -> GenerationUnit:
        unit = self.get(name)
        executable = unit.executable
        if not executable.exists():
            raise UnitValidationError(name, f"executable not found: {executable}")
        if not executable.is_file():
            raise UnitValidationError(name, f"executable is not a file: {executable}")
        if not os.access(executable, os.X_OK):
            raise UnitValidationError(name, f"executable is not marked executable: {executable}")
        return unit

    def validate_all(self, names: Iterable[str]) -> List[GenerationUnit]:
        """Validate every unit before any of them runs."""
        return [self.validate(name) for name in names]


def build_registry(settings: SnapshotSettings, *, project_root: Optional[Path] = None) -> UnitRegistry:
    root = project_root or resolve_project_root()
    registry = UnitRegistry()
    for entry in settings.generators:
        registry.register(
            GenerationUnit(
                name=entry.name,
                display_name=entry.display_name,
                description=entry.description,
                executable=resolve_against(entry.executable, root),
            )
        )
    return registry


__all__ = ["GenerationUnit", "UnitRegistry", "build_registry"]
