"""Captured observable behavior of one implementation run."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .snapshot import ABSENT, FileState, Snapshot, SnapshotDiff, diff


@dataclass(frozen=True)
class InvocationOutcome:
    """Exit status, raw console bytes and tracked file states for one run."""

    implementation: str
    exit_status: int
    stdout: bytes
    stderr: bytes
    duration_s: float = 0.0
    before: Snapshot = field(default_factory=dict)
    after: Snapshot = field(default_factory=dict)
    input_path: Optional[str] = None
    output_path: Optional[str] = None

    def state_after(self, path: Optional[str]) -> FileState:
        if path is None:
            return ABSENT
        return self.after.get(path, ABSENT)

    @property
    def output_file(self) -> Optional[bytes]:
        state = self.state_after(self.output_path)
        return state.content if state.exists else None

    @property
    def input_present(self) -> bool:
        return self.state_after(self.input_path).exists

    @property
    def changes(self) -> SnapshotDiff:
        return diff(self.before, self.after)
