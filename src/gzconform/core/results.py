"""Result data structures produced by the harness runner."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .comparator import Verdict
from .models import TestCase
from .outcome import InvocationOutcome


class CaseState(str, Enum):
    """Progress of one case through the runner."""

    PREPARED = "prepared"
    INVOKED_REFERENCE = "invoked-reference"
    INVOKED_CANDIDATE = "invoked-candidate"
    COMPARED = "compared"
    RECORDED = "recorded"
    SETUP_FAILED = "setup-failed"
    ABORTED = "aborted"


@dataclass
class CaseResult:
    """Outcome of executing a single test case."""

    case: TestCase
    status: str
    state: CaseState
    duration_s: float
    verdict: Optional[Verdict] = None
    reference: Optional[InvocationOutcome] = None
    candidate: Optional[InvocationOutcome] = None
    artifacts: Optional[Path] = None
    error: Optional[str] = None
    index: int = 0

    @property
    def passed(self) -> bool:
        return self.status == "passed"


@dataclass
class RunSummary:
    """Aggregate for a whole run; ``record`` is safe to call from worker threads."""

    results: List[CaseResult] = field(default_factory=list)
    aborted: Optional[str] = None
    duration_s: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, result: CaseResult) -> None:
        with self._lock:
            self.results.append(result)

    def abort(self, reason: str) -> None:
        with self._lock:
            if self.aborted is None:
                self.aborted = reason

    def finalize(self, duration_s: float) -> "RunSummary":
        with self._lock:
            self.results.sort(key=lambda result: result.index)
            self.duration_s = duration_s
        return self

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    def count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def artifact_locations(self) -> List[Path]:
        return [result.artifacts for result in self.results if result.artifacts is not None]

    @property
    def exit_code(self) -> int:
        if self.aborted is not None:
            return 2
        return 0 if self.passed == self.total else 1
