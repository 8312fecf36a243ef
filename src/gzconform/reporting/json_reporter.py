"""JSON reporter emitting structured execution results."""
from __future__ import annotations

import datetime as dt
import json
import pathlib
from typing import Any, Dict, Sequence

import click
from jsonschema import validate

from gzconform.config.models import HarnessConfig
from gzconform.core.comparator import Mismatch
from gzconform.core.models import TestCase
from gzconform.core.results import CaseResult, RunSummary

from .base import Reporter
from .schema import JSON_SCHEMA_V1, SCHEMA_VERSION


class JsonReporter(Reporter):
    """Writes results to a JSON file validated against the schema."""

    def __init__(self, path: str | None = None) -> None:
        self._path = pathlib.Path(path) if path else None
        self._config: HarnessConfig | None = None

    def on_start(self, cases: Sequence[TestCase], config: HarnessConfig) -> None:
        self._config = config

    def on_complete(self, summary: RunSummary) -> None:
        payload = build_payload(summary, self._config)
        text = json.dumps(payload, indent=2)
        if self._path is None:
            click.echo(text)
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem protection
            raise RuntimeError(f"Failed to write JSON report to {self._path}: {exc}") from exc
        click.echo(f"JSON report written to {self._path}")


def build_payload(summary: RunSummary, config: HarnessConfig | None = None) -> Dict[str, Any]:
    payload = {
        "schema_version": SCHEMA_VERSION,
        "generated_at": dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "summary": _build_summary(summary, config),
        "cases": [_case_to_dict(result) for result in summary.results],
    }
    validate(instance=payload, schema=JSON_SCHEMA_V1)
    return payload


def _build_summary(summary: RunSummary, config: HarnessConfig | None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "total": summary.total,
        "passed": summary.passed,
        "failed": summary.count("failed"),
        "setup_failed": summary.count("setup-failed"),
        "aborted": summary.aborted,
        "duration_s": summary.duration_s,
        "artifacts": [str(path) for path in summary.artifact_locations],
    }
    if config is not None:
        data["reference"] = config.reference.executable
        data["candidate"] = config.candidate.executable
    return data


def _case_to_dict(result: CaseResult) -> Dict[str, Any]:
    case = result.case
    record: Dict[str, Any] = {
        "label": case.label,
        "args": list(case.args),
        "policy": case.policy.value,
        "status": result.status,
        "state": result.state.value,
        "duration_ms": result.duration_s * 1000,
        "tags": list(case.tags),
    }
    if result.reference is not None and result.candidate is not None:
        record["exit_status"] = {
            "reference": result.reference.exit_status,
            "candidate": result.candidate.exit_status,
        }
    if result.error:
        record["error"] = result.error
    if result.artifacts is not None:
        record["artifacts"] = str(result.artifacts)
    if isinstance(result.verdict, Mismatch):
        record["mismatches"] = [
            {"channel": reason.channel.value, "detail": reason.detail, "offset": reason.offset}
            for reason in result.verdict.reasons
        ]
    return record
