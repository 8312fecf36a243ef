from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from gzconform import __version__
from gzconform.cli.main import cli, main


def _run_args(make_tool, fixtures_dir: Path, tmp_path: Path, bug: str = "") -> list[str]:
    return [
        "run",
        "--reference",
        str(make_tool("reference-tool")),
        "--candidate",
        str(make_tool("candidate-tool", bug)),
        "--fixtures",
        str(fixtures_dir),
        "--results",
        str(tmp_path / "results"),
        "--no-color",
    ]


def test_help_lists_commands() -> None:
    result = CliRunner().invoke(cli, ["-h"])
    assert result.exit_code == 0
    assert "run" in result.output
    assert "list" in result.output


def test_run_help_documents_exit_status() -> None:
    result = CliRunner().invoke(cli, ["run", "-h"])
    assert result.exit_code == 0
    assert "Exit status:" in result.output
    assert "2    the run was aborted" in result.output
    assert "130  interrupted" in result.output


def test_version_flag() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"gzconform {__version__}"


def test_list_filters_cases(fixtures_dir: Path) -> None:
    result = CliRunner().invoke(
        cli, ["list", "--fixtures", str(fixtures_dir), "--cases", "compression level *,fixture *"]
    )
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert lines[0] == "compression level 1: -k -1 {input} [level]"
    assert len(lines) == 12
    assert lines[-1].startswith("fixture test-word.txt:")


def test_list_by_tag(fixtures_dir: Path) -> None:
    result = CliRunner().invoke(cli, ["list", "--fixtures", str(fixtures_dir), "--tags", "usage", "--skip-tags", "errors"])
    assert result.exit_code == 0
    labels = [line.split(":")[0] for line in result.output.strip().splitlines()]
    assert labels == ["no arguments", "help menu", "license", "version"]


def test_run_passes_with_identical_tools(make_tool, fixtures_dir: Path, tmp_path: Path) -> None:
    args = _run_args(make_tool, fixtures_dir, tmp_path) + ["--cases", "help menu,compression level 1"]
    result = CliRunner().invoke(cli, args)
    assert result.exit_code == 0, result.output
    assert "[1/2] help menu -> PASSED" in result.output
    assert "Passed: 2 out of 2" in result.output


def test_run_reports_failures_with_exit_one(make_tool, fixtures_dir: Path, tmp_path: Path) -> None:
    args = _run_args(make_tool, fixtures_dir, tmp_path, bug="payload") + ["--cases", "compression level 1"]
    result = CliRunner().invoke(cli, args)
    assert result.exit_code == 1
    assert "compression level 1 -> FAILED" in result.output
    assert "output-file-bytes" in result.output
    assert (tmp_path / "results" / "001-compression-level-1" / "verdict.json").exists()
    assert "Passed: 0 out of 1" in result.output


def test_run_aborts_on_missing_candidate(make_tool, fixtures_dir: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        [
            "run",
            "--reference",
            str(make_tool("reference-tool")),
            "--candidate",
            str(tmp_path / "missing-gzip"),
            "--fixtures",
            str(fixtures_dir),
            "--no-color",
        ],
    )
    assert result.exit_code == 2
    assert "Run aborted" in result.output


def test_run_requires_candidate_or_config() -> None:
    result = CliRunner().invoke(cli, ["run"])
    assert result.exit_code == 2
    assert "--candidate" in result.output


def test_run_with_no_matching_cases(make_tool, fixtures_dir: Path, tmp_path: Path) -> None:
    args = _run_args(make_tool, fixtures_dir, tmp_path) + ["--cases", "does not exist"]
    result = CliRunner().invoke(cli, args)
    assert result.exit_code == 1
    assert "No cases matched" in result.output


def test_run_json_report(make_tool, fixtures_dir: Path, tmp_path: Path) -> None:
    report = tmp_path / "report.json"
    args = _run_args(make_tool, fixtures_dir, tmp_path) + [
        "--cases",
        "keep input",
        "--report",
        "json",
        "--report-path",
        str(report),
        "--workers",
        "2",
    ]
    result = CliRunner().invoke(cli, args)
    assert result.exit_code == 0, result.output
    payload = json.loads(report.read_text())
    assert payload["summary"]["total"] == 1
    assert payload["cases"][0]["label"] == "keep input"
    assert payload["cases"][0]["status"] == "passed"


def test_run_from_config_file(make_tool, fixtures_dir: Path, tmp_path: Path) -> None:
    config = tmp_path / "harness.yaml"
    config.write_text(
        "\n".join(
            [
                f"reference: {make_tool('reference-tool')}",
                f"candidate: {make_tool('candidate-tool')}",
                f"fixtures: {fixtures_dir}",
                f"results: {tmp_path / 'results'}",
                "builtin_cases: false",
                "cases:",
                "  - label: binary level 3",
                "    args: ['-k', '-3', '{input}']",
                "    input: binary.bin",
                "    policy: stdout-and-output-file",
                "",
            ]
        ),
        encoding="utf-8",
    )
    result = CliRunner().invoke(cli, ["run", "--config", str(config), "--no-color", "--exit-status", "exact"])
    assert result.exit_code == 0, result.output
    assert "exit_status=exact" in result.output
    assert "Passed: 1 out of 1" in result.output


def test_main_returns_exit_code() -> None:
    assert main(["--version"]) == 0
