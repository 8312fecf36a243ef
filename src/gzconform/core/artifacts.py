"""Failure artifact persistence under the results directory."""
from __future__ import annotations

import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from .comparator import Mismatch, Verdict
from .errors import ArtifactError
from .models import TestCase
from .outcome import InvocationOutcome

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^A-Za-z0-9._-]+")
_CASE_DIR_RE = re.compile(r"^\d{3,}-")


def case_slug(label: str) -> str:
    slug = _SLUG_RE.sub("-", label.strip()).strip("-.").lower()
    return slug or "case"


class ArtifactStore:
    """Writes the captured outputs of both implementations for a failing case."""

    def __init__(self, results_dir: Path) -> None:
        self._results_dir = Path(results_dir)

    @property
    def results_dir(self) -> Path:
        return self._results_dir

    def reset(self) -> int:
        """Remove case directories left behind by an earlier run.

        Only ``NNN-<slug>`` directories are removed; reports and other files
        that share the results directory are left alone.
        """

        if not self._results_dir.is_dir():
            return 0
        removed = 0
        try:
            for entry in sorted(self._results_dir.iterdir()):
                if entry.is_dir() and _CASE_DIR_RE.match(entry.name):
                    shutil.rmtree(entry)
                    removed += 1
        except OSError as exc:
            raise ArtifactError(f"Failed to clear stale artifacts in {self._results_dir}: {exc}") from exc
        if removed:
            logger.debug("removed %d stale artifact directories from %s", removed, self._results_dir)
        return removed

    def preserve(
        self,
        case: TestCase,
        reference: InvocationOutcome,
        candidate: InvocationOutcome,
        verdict: Verdict,
        *,
        suffix: str = "",
        index: int = 0,
    ) -> Path:
        target = self._results_dir / f"{index:03d}-{case_slug(case.label)}"
        try:
            if target.exists():
                shutil.rmtree(target)
            target.mkdir(parents=True)
            for outcome in (reference, candidate):
                self._write_outcome(target, outcome, suffix)
            (target / "verdict.json").write_text(
                json.dumps(_verdict_to_dict(case, verdict, reference, candidate), indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise ArtifactError(f"Failed to write artifacts for '{case.label}' to {target}: {exc}") from exc
        logger.debug("artifacts for %s written to %s", case.label, target)
        return target

    def _write_outcome(self, target: Path, outcome: InvocationOutcome, suffix: str) -> None:
        name = outcome.implementation
        (target / f"{name}.stdout").write_bytes(outcome.stdout)
        (target / f"{name}.stderr").write_bytes(outcome.stderr)
        produced: Optional[bytes] = outcome.output_file
        if produced is not None:
            (target / f"{name}_output{suffix}").write_bytes(produced)


def _verdict_to_dict(
    case: TestCase, verdict: Verdict, reference: InvocationOutcome, candidate: InvocationOutcome
) -> Dict[str, Any]:
    reasons = []
    if isinstance(verdict, Mismatch):
        reasons = [
            {"channel": reason.channel.value, "detail": reason.detail, "offset": reason.offset}
            for reason in verdict.reasons
        ]
    return {
        "case": case.label,
        "args": list(case.args),
        "policy": case.policy.value,
        "exit_status": {"reference": reference.exit_status, "candidate": candidate.exit_status},
        "reasons": reasons,
    }
