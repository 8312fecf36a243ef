"""CLI entry point for gzconform."""
from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from gzconform import __version__, bootstrap
from gzconform.config import ConfigError, HarnessConfig, RunOptions, build_config, load_config
from gzconform.core.models import ExitStatusMode, TestCase
from gzconform.core.runner import HarnessRunner
from gzconform.registry import build_registry, select
from gzconform.reporting import JsonReporter, ReportManager, Reporter, TerminalReporter


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class CliState:
    """Holds global CLI state."""

    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"gzconform {__version__}")
    raise click.exceptions.Exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the gzconform version and exit.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Differential conformance harness for compression tools."""

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    bootstrap()
    ctx.obj = CliState(verbose=verbose)


def _config_options(func):
    options = [
        click.option(
            "--config",
            "config_path",
            type=click.Path(exists=True, dir_okay=False),
            help="YAML harness configuration file.",
        ),
        click.option("--reference", type=str, help="Reference executable (default: gzip on PATH)."),
        click.option("--candidate", type=str, help="Candidate executable under test."),
        click.option("--fixtures", type=click.Path(file_okay=False), help="Fixture directory for input files."),
        click.option("--cases", "case_filters", type=str, help="Comma-separated case label filters (supports globs)."),
        click.option("--tags", "tag_filters", type=str, help="Comma-separated tags to include."),
        click.option("--skip-tags", "skip_tag_filters", type=str, help="Comma-separated tags to skip."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


RUN_EPILOG = (
    "\b\n"
    "Exit status:\n"
    "  0    every selected case passed\n"
    "  1    at least one case failed or could not be set up\n"
    "  2    the run was aborted (missing executable, timeout or harness error)\n"
    "  130  interrupted by the operator"
)


@cli.command(epilog=RUN_EPILOG)
@_config_options
@click.option("--argv0", type=str, help="Program name both implementations see as argv[0].")
@click.option("--results", type=click.Path(file_okay=False), help="Directory receiving failure artifacts.")
@click.option("--timeout", type=float, help="Per-invocation timeout in seconds.")
@click.option("--workers", type=click.IntRange(min=1), help="Number of cases to run in parallel.")
@click.option(
    "--exit-status",
    type=click.Choice([mode.value for mode in ExitStatusMode]),
    help="Match exit statuses by success/failure class or exactly.",
)
@click.option(
    "--report",
    "report_format",
    type=click.Choice(["terminal", "json"]),
    default="terminal",
    show_default=True,
    help="Report format (terminal by default).",
)
@click.option("--report-path", type=str, help="When --report json, write to this path.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")
@click.pass_obj
def run(
    state: CliState,
    config_path: Optional[str],
    reference: Optional[str],
    candidate: Optional[str],
    fixtures: Optional[str],
    case_filters: Optional[str],
    tag_filters: Optional[str],
    skip_tag_filters: Optional[str],
    argv0: Optional[str],
    results: Optional[str],
    timeout: Optional[float],
    workers: Optional[int],
    exit_status: Optional[str],
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Run every selected case against both implementations."""

    options = RunOptions(
        cases=_split_csv(case_filters),
        tags=_split_csv(tag_filters),
        skip_tags=_split_csv(skip_tag_filters),
        report_format=report_format,
        report_path=report_path,
        use_color=not no_color,
    )
    overrides: Dict[str, Any] = {
        "fixtures": fixtures,
        "results": results,
        "argv0": argv0,
        "timeout": timeout,
        "workers": workers,
        "exit_status": exit_status,
    }
    config = _resolve_config(config_path, reference, candidate, overrides)
    cases = _resolve_cases(config, options)
    if not cases:
        click.echo("No cases matched the provided filters.")
        raise click.exceptions.Exit(1)
    manager = ReportManager(_build_reporters(options))
    manager.start(cases, config)
    runner = HarnessRunner(config)
    try:
        summary = runner.run(cases, on_result=manager.handle_result)
    except KeyboardInterrupt:
        click.echo("Interrupted; scratch workspaces released.", err=True)
        raise click.exceptions.Exit(130)
    manager.complete(summary)
    raise click.exceptions.Exit(summary.exit_code)


@cli.command(name="list")
@_config_options
def list_cases(
    config_path: Optional[str],
    reference: Optional[str],
    candidate: Optional[str],
    fixtures: Optional[str],
    case_filters: Optional[str],
    tag_filters: Optional[str],
    skip_tag_filters: Optional[str],
) -> None:
    """List the cases a run would execute."""

    config = _resolve_config(
        config_path, reference, candidate, {"fixtures": fixtures}, require_candidate=False
    )
    options = RunOptions(
        cases=_split_csv(case_filters),
        tags=_split_csv(tag_filters),
        skip_tags=_split_csv(skip_tag_filters),
    )
    for case in _resolve_cases(config, options):
        tags = f" [{', '.join(case.tags)}]" if case.tags else ""
        click.echo(f"{case.label}: {' '.join(case.args) or '<no arguments>'}{tags}")


def _resolve_config(
    config_path: Optional[str],
    reference: Optional[str],
    candidate: Optional[str],
    overrides: Dict[str, Any],
    *,
    require_candidate: bool = True,
) -> HarnessConfig:
    try:
        if config_path:
            config = load_config(config_path)
            return _apply_overrides(config, reference, candidate, overrides)
        if not candidate and require_candidate:
            raise click.UsageError("Either --config or --candidate is required.")
        return build_config(
            reference=reference or "gzip", candidate=candidate or "candidate", overrides=overrides
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _apply_overrides(
    config: HarnessConfig,
    reference: Optional[str],
    candidate: Optional[str],
    overrides: Dict[str, Any],
) -> HarnessConfig:
    changes: Dict[str, Any] = {}
    if reference:
        changes["reference"] = dataclasses.replace(config.reference, executable=reference)
    if candidate:
        changes["candidate"] = dataclasses.replace(config.candidate, executable=candidate)
    if overrides.get("fixtures"):
        changes["fixtures_dir"] = Path(overrides["fixtures"]).resolve()
    if overrides.get("results"):
        changes["results_dir"] = Path(overrides["results"]).resolve()
    if overrides.get("argv0"):
        changes["argv0"] = overrides["argv0"]
    if overrides.get("timeout") is not None:
        changes["timeout"] = float(overrides["timeout"])
    if overrides.get("workers"):
        changes["workers"] = int(overrides["workers"])
    if overrides.get("exit_status"):
        changes["exit_status"] = ExitStatusMode(overrides["exit_status"])
    return dataclasses.replace(config, **changes)


def _resolve_cases(config: HarnessConfig, options: RunOptions) -> Tuple[TestCase, ...]:
    registry = build_registry(
        include_builtins=config.builtin_cases,
        cases=config.cases,
        sweeps=config.sweeps,
    )
    try:
        resolved = registry.resolve(config.fixtures_dir)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    return select(resolved, patterns=options.cases, tags=options.tags, skip_tags=options.skip_tags)


def _build_reporters(options: RunOptions) -> list[Reporter]:
    if options.report_format == "json":
        return [JsonReporter(options.report_path)]
    return [TerminalReporter(use_color=options.use_color)]


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return tuple()
    parts = [part.strip() for part in value.split(",") if part.strip()]
    return tuple(parts)


def main(argv: Optional[list[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=argv, prog_name="gzconform", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click may raise exit code
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
