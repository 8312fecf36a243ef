"""Reporter lifecycle hooks and fan-out."""
from __future__ import annotations

from typing import Sequence

from gzconform.config.models import HarnessConfig
from gzconform.core.models import TestCase
from gzconform.core.results import CaseResult, RunSummary


class Reporter:
    """Receives run events; every hook defaults to doing nothing.

    ``on_case_result`` is called once per recorded case in completion order,
    which differs from declaration order when cases run in parallel.
    """

    def on_start(self, cases: Sequence[TestCase], config: HarnessConfig) -> None:
        return None

    def on_case_result(self, result: CaseResult, index: int, total: int) -> None:
        return None

    def on_complete(self, summary: RunSummary) -> None:
        return None


class ReportManager:
    """Forwards each event to all configured reporters in order."""

    def __init__(self, reporters: Sequence[Reporter]) -> None:
        self._reporters = tuple(reporters)

    def start(self, cases: Sequence[TestCase], config: HarnessConfig) -> None:
        for reporter in self._reporters:
            reporter.on_start(cases, config)

    def handle_result(self, result: CaseResult, index: int, total: int) -> None:
        for reporter in self._reporters:
            reporter.on_case_result(result, index, total)

    def complete(self, summary: RunSummary) -> None:
        for reporter in self._reporters:
            reporter.on_complete(summary)
