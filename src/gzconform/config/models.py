"""Data models for the harness configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from gzconform.core.models import ExitStatusMode, TestCase
from gzconform.registry.registry import FixtureSweep


@dataclass(frozen=True)
class CommandConfig:
    argv: Sequence[str]


@dataclass(frozen=True)
class Implementation:
    """One side of the comparison: an opaque executable plus how to build it."""

    name: str
    executable: str
    prepare: Sequence[CommandConfig] = field(default_factory=tuple)
    env: Mapping[str, str] = field(default_factory=dict)
    workdir: Optional[Path] = None


@dataclass(frozen=True)
class HarnessConfig:
    reference: Implementation
    candidate: Implementation
    fixtures_dir: Path = Path("fixtures")
    results_dir: Path = Path("results")
    argv0: Optional[str] = None
    timeout: Optional[float] = 60.0
    workers: int = 1
    exit_status: ExitStatusMode = ExitStatusMode.CLASS
    builtin_cases: bool = True
    cases: Sequence[TestCase] = field(default_factory=tuple)
    sweeps: Sequence[FixtureSweep] = field(default_factory=tuple)
    scratch_dir: Optional[Path] = None


@dataclass(frozen=True)
class RunOptions:
    """Case selection and reporting options supplied on the command line."""

    cases: Sequence[str] = field(default_factory=tuple)
    tags: Sequence[str] = field(default_factory=tuple)
    skip_tags: Sequence[str] = field(default_factory=tuple)
    report_format: str = "terminal"
    report_path: Optional[str] = None
    use_color: bool = True
