"""Core dataclasses shared across gzconform subsystems."""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class Policy(str, Enum):
    """Equivalence policy applied to a pair of outcomes."""

    STDOUT_ONLY = "stdout-only"
    STDOUT_AND_OUTPUT_FILE = "stdout-and-output-file"
    STDOUT_AND_DELETION = "stdout-and-deletion"


class ExitStatusMode(str, Enum):
    """How exit statuses are matched: success/failure class or exact code."""

    CLASS = "class"
    EXACT = "exact"


@dataclass(frozen=True)
class PreCondition:
    """File created in the workspace after acquisition and before invocation."""

    path: str
    content: bytes = b""
    preserve: bool = False


@dataclass(frozen=True)
class TestCase:
    """Declarative description of one invocation shared by both implementations."""

    __test__ = False  # not a pytest class

    label: str
    args: Tuple[str, ...] = tuple()
    input_file: Optional[str] = None
    target: Optional[str] = None
    preconditions: Tuple[PreCondition, ...] = tuple()
    policy: Policy = Policy.STDOUT_ONLY
    expect_input: Optional[bool] = None
    exit_status: Optional[ExitStatusMode] = None
    output_format: str = "gzip"
    output_suffix: Optional[str] = None
    stdout_format: Optional[str] = None
    expect_trailer: Optional[Tuple[int, ...]] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.label:
            raise ValueError("Test case label cannot be empty")
        if self.policy is Policy.STDOUT_AND_DELETION and self.expect_input is None:
            raise ValueError(
                f"Case '{self.label}' uses {self.policy.value} but does not declare expect_input"
            )
        for pre in self.preconditions:
            _check_relative(self.label, pre.path)
        if self.target:
            _check_relative(self.label, self.target)

    def target_name(self) -> Optional[str]:
        if self.target:
            return self.target
        if self.input_file:
            return posixpath.basename(self.input_file.replace("\\", "/"))
        return None

    def output_name(self, default_suffix: str) -> Optional[str]:
        target = self.target_name()
        if target is None:
            return None
        return target + (self.output_suffix if self.output_suffix is not None else default_suffix)

    def render_args(self, default_suffix: str) -> Tuple[str, ...]:
        tokens: Dict[str, str] = {
            "input": self.target_name() or "",
            "output": self.output_name(default_suffix) or "",
        }
        return tuple(_render(arg, tokens, self.label) for arg in self.args)

    def tracked_paths(self, default_suffix: str) -> Tuple[str, ...]:
        paths: list[str] = []
        for candidate in (self.target_name(), self.output_name(default_suffix)):
            if candidate and candidate not in paths:
                paths.append(candidate)
        for pre in self.preconditions:
            if pre.path not in paths:
                paths.append(pre.path)
        return tuple(paths)


def _render(value: str, tokens: Dict[str, str], label: str) -> str:
    if "{" not in value or "}" not in value:
        return value
    try:
        return value.format(**tokens)
    except KeyError as exc:
        available = ", ".join(sorted(tokens))
        raise ValueError(
            f"Unknown token {exc} in argument '{value}' of case '{label}'. Available tokens: {available}"
        ) from exc


def _check_relative(label: str, path: str) -> None:
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if posixpath.isabs(normalized) or normalized.startswith(".."):
        raise ValueError(f"Case '{label}' path '{path}' must stay inside the workspace")
