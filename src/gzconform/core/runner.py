"""Harness runner driving both implementations through every case."""
from __future__ import annotations

import logging
import shutil
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Tuple

from gzconform.config.models import HarnessConfig, Implementation

from .artifacts import ArtifactStore
from .comparator import ComparisonPolicy, compare
from .errors import HarnessFatalError, SetupError
from .formats import ContainerFormat, get_format
from .invoker import check_executable, invoke, run_prepare
from .models import TestCase
from .outcome import InvocationOutcome
from .results import CaseResult, CaseState, RunSummary
from .snapshot import snapshot
from .workspace import ScratchWorkspace, WorkspaceManager

logger = logging.getLogger(__name__)

ResultCallback = Callable[[CaseResult, int, int], None]


class HarnessRunner:
    """Executes test cases against the reference and the candidate.

    Each implementation runs in its own scratch workspace so neither can see
    the other's side effects. A harness-fatal error stops the run; a setup
    failure or a mismatch is recorded and the run continues.
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        workspaces: Optional[WorkspaceManager] = None,
        artifacts: Optional[ArtifactStore] = None,
    ) -> None:
        self._config = config
        self._workspaces = workspaces or WorkspaceManager(config.scratch_dir)
        self._artifacts = artifacts or ArtifactStore(config.results_dir)
        self._executables: Dict[str, str] = {}
        self._abort = threading.Event()
        self._record_lock = threading.Lock()

    @property
    def workspaces(self) -> WorkspaceManager:
        return self._workspaces

    def run(
        self,
        cases: Sequence[TestCase],
        *,
        on_result: Optional[ResultCallback] = None,
    ) -> RunSummary:
        summary = RunSummary()
        start = time.perf_counter()
        self._abort.clear()
        try:
            try:
                self._artifacts.reset()
                self._prepare_implementations()
            except HarnessFatalError as exc:
                logger.debug("run aborted before the first case: %s", exc)
                summary.abort(str(exc))
                return summary.finalize(time.perf_counter() - start)
            if self._config.workers > 1:
                self._run_parallel(cases, summary, on_result)
            else:
                self._run_sequential(cases, summary, on_result)
        finally:
            self._workspaces.release_all()
        return summary.finalize(time.perf_counter() - start)

    def execute_case(self, case: TestCase, index: int = 0) -> CaseResult:
        """Run one case through both implementations and compare them."""

        if not self._executables:
            self._prepare_implementations()
        start = time.perf_counter()
        state = CaseState.PREPARED
        try:
            fmt, policy = self._resolve_policy(case)
            suffix = case.output_suffix if case.output_suffix is not None else fmt.suffix
            reference = self._run_side(self._config.reference, case, fmt.suffix)
            state = CaseState.INVOKED_REFERENCE
            candidate = self._run_side(self._config.candidate, case, fmt.suffix)
            state = CaseState.INVOKED_CANDIDATE
            verdict = compare(reference, candidate, policy)
            state = CaseState.COMPARED
            artifacts: Optional[Path] = None
            if not verdict.matched:
                artifacts = self._artifacts.preserve(
                    case, reference, candidate, verdict, suffix=suffix, index=index
                )
        except SetupError as exc:
            return CaseResult(
                case=case,
                status="setup-failed",
                state=CaseState.SETUP_FAILED,
                duration_s=time.perf_counter() - start,
                error=str(exc),
                index=index,
            )
        except HarnessFatalError as exc:
            return CaseResult(
                case=case,
                status="aborted",
                state=CaseState.ABORTED,
                duration_s=time.perf_counter() - start,
                error=f"{exc} (after state {state.value})",
                index=index,
            )
        return CaseResult(
            case=case,
            status="passed" if verdict.matched else "failed",
            state=CaseState.RECORDED,
            duration_s=time.perf_counter() - start,
            verdict=verdict,
            reference=reference,
            candidate=candidate,
            artifacts=artifacts,
            index=index,
        )

    def _resolve_policy(self, case: TestCase) -> Tuple[ContainerFormat, ComparisonPolicy]:
        try:
            fmt = get_format(case.output_format)
            policy = ComparisonPolicy.for_case(case, default_exit_status=self._config.exit_status)
        except KeyError as exc:
            raise SetupError(exc.args[0]) from exc
        return fmt, policy

    def _prepare_implementations(self) -> None:
        for impl in (self._config.reference, self._config.candidate):
            for command in impl.prepare:
                run_prepare(
                    command.argv,
                    impl.workdir or Path.cwd(),
                    env=impl.env,
                    timeout=self._config.timeout,
                )
            self._executables[impl.name] = check_executable(impl.executable)
            logger.debug("%s executable resolved to %s", impl.name, self._executables[impl.name])

    def _run_sequential(
        self, cases: Sequence[TestCase], summary: RunSummary, on_result: Optional[ResultCallback]
    ) -> None:
        total = len(cases)
        for index, case in enumerate(cases, start=1):
            result = self.execute_case(case, index)
            self._record(summary, result, total, on_result)
            if self._abort.is_set():
                break

    def _run_parallel(
        self, cases: Sequence[TestCase], summary: RunSummary, on_result: Optional[ResultCallback]
    ) -> None:
        total = len(cases)
        pool = ThreadPoolExecutor(max_workers=self._config.workers, thread_name_prefix="gzconform")
        try:
            futures = [
                pool.submit(self._execute_unless_aborted, case, index)
                for index, case in enumerate(cases, start=1)
            ]
            for future in as_completed(futures):
                result = future.result()
                if result is None:
                    continue
                self._record(summary, result, total, on_result)
        except BaseException:
            self._abort.set()
            raise
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

    def _execute_unless_aborted(self, case: TestCase, index: int) -> Optional[CaseResult]:
        if self._abort.is_set():
            return None
        return self.execute_case(case, index)

    def _record(
        self,
        summary: RunSummary,
        result: CaseResult,
        total: int,
        on_result: Optional[ResultCallback],
    ) -> None:
        with self._record_lock:
            summary.record(result)
            if result.state is CaseState.ABORTED:
                summary.abort(f"{result.case.label}: {result.error}")
                self._abort.set()
            if on_result:
                on_result(result, result.index, total)

    def _run_side(self, impl: Implementation, case: TestCase, default_suffix: str) -> InvocationOutcome:
        try:
            args = case.render_args(default_suffix)
        except ValueError as exc:
            raise SetupError(str(exc)) from exc
        tracked = case.tracked_paths(default_suffix)
        with self._workspaces.scoped() as workspace:
            self._apply_preconditions(workspace, case)
            before = snapshot(workspace.root, tracked)
            outcome = invoke(
                self._executables[impl.name],
                args,
                workspace.root,
                implementation=impl.name,
                argv0=self._config.argv0,
                timeout=self._config.timeout,
                env=impl.env,
            )
            after = snapshot(workspace.root, tracked)
        return replace(
            outcome,
            before=before,
            after=after,
            input_path=case.target_name(),
            output_path=case.output_name(default_suffix),
        )

    def _apply_preconditions(self, workspace: ScratchWorkspace, case: TestCase) -> None:
        try:
            if case.input_file:
                source = self._config.fixtures_dir / case.input_file
                if not source.is_file():
                    raise SetupError(
                        f"fixture '{case.input_file}' for case '{case.label}' not found in "
                        f"{self._config.fixtures_dir}"
                    )
                destination = workspace.path(case.target_name() or source.name)
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
            for pre in case.preconditions:
                path = workspace.path(pre.path)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(pre.content)
        except OSError as exc:
            raise SetupError(f"unable to set up case '{case.label}': {exc}") from exc


def run_cases(
    config: HarnessConfig,
    cases: Sequence[TestCase],
    *,
    on_result: Optional[ResultCallback] = None,
) -> RunSummary:
    """Convenience wrapper building a runner for a single run."""

    return HarnessRunner(config).run(cases, on_result=on_result)

