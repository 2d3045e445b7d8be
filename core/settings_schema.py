"""Allowed shape of ``settings.json``, used to report unknown keys."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping

# Rule grammar: ``None`` accepts any value, a set names the allowed keys of a
# flat object, a one-element list applies its rule to every list item, and a
# dict describes a nested object.
_GENERATOR_KEYS = {"name", "display_name", "description", "executable"}

_ALLOWED_STRUCTURE: Dict[str, Any] = {
    "version": None,
    "snapshot_target_dir": None,
    "backup_retention_days": None,
    "logs_dir": None,
    "use_machine_directories": None,
    "logging": {"level", "color"},
    "generators": [_GENERATOR_KEYS],
}


@dataclass(slots=True)
class SettingsValidator:
    schema: Mapping[str, Any]

    def unknown_keys(self, payload: Mapping[str, Any]) -> List[str]:
        return sorted(self._walk(payload, dict(self.schema), ""))

    def _walk(self, value: Any, rule: Any, path: str) -> Iterator[str]:
        if rule is None:
            return
        if isinstance(rule, list):
            if isinstance(value, list):
                for index, item in enumerate(value):
                    yield from self._walk(item, rule[0], f"{path}[{index}]")
            return
        if not isinstance(value, Mapping):
            return
        prefix = f"{path}." if path else ""
        for key, item in value.items():
            if key not in rule:
                yield f"{prefix}{key}"
            elif isinstance(rule, dict):
                yield from self._walk(item, rule[key], f"{prefix}{key}")


SETTINGS_VALIDATOR = SettingsValidator(_ALLOWED_STRUCTURE)

__all__ = ["SETTINGS_VALIDATOR", "SettingsValidator"]
