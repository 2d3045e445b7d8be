"""Helpers shared by generation unit executables."""

from .session import UnitFailure, UnitSession, parse_unit_argv

__all__ = ["UnitFailure", "UnitSession", "parse_unit_argv"]
