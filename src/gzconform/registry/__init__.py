"""Test case registry exports."""
from __future__ import annotations

from typing import Iterable

from gzconform.core.models import TestCase

from .registry import CaseRegistry, FixtureSweep, select

__all__ = [
    "CaseRegistry",
    "FixtureSweep",
    "build_registry",
    "registry",
    "select",
]

# Cases registered by plugin modules at bootstrap time.
registry = CaseRegistry()


def build_registry(
    *,
    include_builtins: bool = True,
    cases: Iterable[TestCase] = (),
    sweeps: Iterable[FixtureSweep] = (),
) -> CaseRegistry:
    """Fresh registry: built-ins, then plugin cases, then configured entries."""

    from . import builtins  # noqa: WPS433

    result = CaseRegistry()
    if include_builtins:
        for case in builtins.BUILTIN_CASES:
            result.register(case)
    for case in registry:
        result.update_or_register(case)
    for case in cases:
        result.update_or_register(case)
    if include_builtins:
        for sweep in builtins.BUILTIN_SWEEPS:
            result.add_sweep(sweep)
    for sweep in sweeps:
        result.add_sweep(sweep)
    return result
