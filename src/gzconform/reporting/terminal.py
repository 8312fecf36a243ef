"""Terminal reporter rendering progress and summaries."""
from __future__ import annotations

import time
from typing import Sequence

import click
import colorama

from gzconform.config.models import HarnessConfig
from gzconform.core.comparator import Mismatch
from gzconform.core.models import TestCase
from gzconform.core.results import CaseResult, RunSummary

from .base import Reporter


STATUS_COLORS = {
    "passed": "green",
    "failed": "red",
    "setup-failed": "yellow",
    "aborted": "magenta",
}


class TerminalReporter(Reporter):
    """Human-readable reporter that streams to stdout."""

    def __init__(self, *, use_color: bool = True) -> None:
        self._use_color = use_color
        self._start_time = 0.0
        self._failures: list[tuple[int, CaseResult]] = []
        if use_color:
            colorama.just_fix_windows_console()

    def on_start(self, cases: Sequence[TestCase], config: HarnessConfig) -> None:
        self._start_time = time.perf_counter()
        self._failures.clear()
        click.echo(
            self._styled(
                f"Starting run: {len(cases)} case(s) reference={config.reference.executable} "
                f"candidate={config.candidate.executable} workers={config.workers} "
                f"exit_status={config.exit_status.value}",
                force_color="cyan",
            )
        )

    def on_case_result(self, result: CaseResult, index: int, total: int) -> None:
        ms = result.duration_s * 1000
        status_text = self._styled(result.status.upper(), force_color=STATUS_COLORS.get(result.status))
        click.echo(f"[{index}/{total}] {result.case.label} -> {status_text} ({ms:.2f} ms)")
        if not result.passed:
            self._failures.append((index, result))
            self._print_failure_details(result)

    def on_complete(self, summary: RunSummary) -> None:
        duration = time.perf_counter() - self._start_time
        click.echo(
            self._styled(
                f"Summary: total={summary.total} passed={summary.passed} "
                f"failed={summary.count('failed')} setup_failed={summary.count('setup-failed')} "
                f"duration={duration:.2f}s",
                force_color="cyan",
            )
        )
        if self._failures:
            click.echo(self._styled("Failure details:", force_color="red"))
            for index, result in self._failures:
                click.echo(f"  [{index}] {result.case.label} -> {result.status}")
                if result.artifacts is not None:
                    click.echo(f"    artifacts: {result.artifacts}")
                elif result.error:
                    click.echo(f"    error: {result.error}")
        if summary.aborted is not None:
            click.echo(self._styled(f"Run aborted: {summary.aborted}", force_color="magenta"), err=True)
        color = "green" if summary.passed == summary.total and summary.aborted is None else "red"
        click.echo(self._styled(f"Passed: {summary.passed} out of {summary.total}", force_color=color))

    def _styled(self, text: str, *, force_color: str | None = None) -> str:
        if not self._use_color or not force_color:
            return text
        return click.style(text, fg=force_color)

    def _print_failure_details(self, result: CaseResult, *, indent: str = "    ") -> None:
        case = result.case
        click.echo(f"{indent}args: {' '.join(case.args) or '<none>'} policy={case.policy.value}")
        if result.error:
            label = "setup failed" if result.status == "setup-failed" else "error"
            click.echo(f"{indent}{label}: {result.error}")
            return
        if result.reference is not None and result.candidate is not None:
            click.echo(
                f"{indent}exit status: reference={result.reference.exit_status} "
                f"candidate={result.candidate.exit_status}"
            )
        verdict = result.verdict
        if not isinstance(verdict, Mismatch):
            click.echo(f"{indent}comparison data unavailable")
            return
        for reason in verdict.reasons:
            location = f" @{reason.offset}" if reason.offset is not None else ""
            click.echo(f"{indent}{reason.channel.value}{location}:")
            for line in reason.detail.splitlines():
                click.echo(f"{indent}  {line}")
        if result.artifacts is not None:
            click.echo(f"{indent}artifacts: {result.artifacts}")
