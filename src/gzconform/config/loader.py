"""YAML loader and validation for harness configuration files."""
from __future__ import annotations

import shlex
import struct
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml
from jsonschema import Draft7Validator

from gzconform.core.formats import ByteRange, ContainerFormat, get_format, register_format
from gzconform.core.models import ExitStatusMode, Policy, PreCondition, TestCase
from gzconform.registry.registry import FixtureSweep

from .models import CommandConfig, HarnessConfig, Implementation


class ConfigError(ValueError):
    """Configuration file is malformed or inconsistent."""


_COMMAND = {
    "anyOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}, "minItems": 1},
    ]
}

_IMPLEMENTATION = {
    "anyOf": [
        {"type": "string"},
        {
            "type": "object",
            "required": ["executable"],
            "additionalProperties": False,
            "properties": {
                "executable": {"type": "string"},
                "prepare": {"type": "array", "items": _COMMAND},
                "env": {"type": "object", "additionalProperties": {"type": ["string", "number"]}},
                "workdir": {"type": "string"},
            },
        },
    ]
}

_CASE = {
    "type": "object",
    "required": ["label"],
    "additionalProperties": False,
    "properties": {
        "label": {"type": "string", "minLength": 1},
        "args": {"type": "array", "items": {"type": ["string", "number"]}},
        "input": {"type": "string"},
        "target": {"type": "string"},
        "preconditions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["path"],
                "additionalProperties": False,
                "properties": {
                    "path": {"type": "string"},
                    "content": {"type": "string"},
                    "preserve": {"type": "boolean"},
                },
            },
        },
        "policy": {"enum": [policy.value for policy in Policy]},
        "expect_input": {"type": "boolean"},
        "exit_status": {"enum": [mode.value for mode in ExitStatusMode]},
        "format": {"type": "string"},
        "suffix": {"type": "string"},
        "stdout_format": {"type": "string"},
        "expect_trailer": {"type": "array", "items": {"type": "integer"}},
        "tags": {"type": "array", "items": {"type": "string"}},
    },
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "gzconform harness configuration",
    "type": "object",
    "required": ["reference", "candidate"],
    "additionalProperties": False,
    "properties": {
        "reference": _IMPLEMENTATION,
        "candidate": _IMPLEMENTATION,
        "argv0": {"type": "string"},
        "fixtures": {"type": "string"},
        "results": {"type": "string"},
        "scratch": {"type": "string"},
        "timeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "workers": {"type": "integer", "minimum": 1},
        "exit_status": {"enum": [mode.value for mode in ExitStatusMode]},
        "builtin_cases": {"type": "boolean"},
        "formats": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "suffix"],
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string"},
                    "suffix": {"type": "string"},
                    "masked": {
                        "type": "array",
                        "items": {
                            "type": "array",
                            "items": {"type": "integer", "minimum": 0},
                            "minItems": 2,
                            "maxItems": 2,
                        },
                    },
                    "trailer": {"type": "string"},
                    "magic": {"type": "string"},
                },
            },
        },
        "cases": {"type": "array", "items": _CASE},
        "sweeps": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["label", "args"],
                "additionalProperties": False,
                "properties": {
                    "label": {"type": "string"},
                    "args": {"type": "array", "items": {"type": "string"}},
                    "policy": {"enum": [policy.value for policy in Policy]},
                    "pattern": {"type": "string"},
                    "tags": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}

_validator = Draft7Validator(CONFIG_SCHEMA)


def load_config(path: str) -> HarnessConfig:
    """Load and validate a harness configuration file."""

    config_path = Path(path).expanduser().resolve()
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError("Config file must contain a mapping at the top level")
    return parse_config(raw, config_path.parent)


def parse_config(raw: Mapping[str, Any], base: Path) -> HarnessConfig:
    errors = sorted(_validator.iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise ConfigError(f"Config schema validation failed: {messages}")
    for entry in raw.get("formats", []) or []:
        register_format(_parse_format(entry), replace=True)
    reference = _parse_implementation("reference", raw["reference"], base)
    candidate = _parse_implementation("candidate", raw["candidate"], base)
    cases = tuple(parse_case(entry) for entry in raw.get("cases", []) or [])
    for case in cases:
        _check_formats(case)
    timeout = raw.get("timeout", 60.0)
    return HarnessConfig(
        reference=reference,
        candidate=candidate,
        fixtures_dir=_resolve_dir(raw.get("fixtures", "fixtures"), base),
        results_dir=_resolve_dir(raw.get("results", "results"), base),
        scratch_dir=_resolve_dir(raw["scratch"], base) if raw.get("scratch") else None,
        argv0=raw.get("argv0"),
        timeout=float(timeout) if timeout is not None else None,
        workers=int(raw.get("workers", 1)),
        exit_status=ExitStatusMode(raw.get("exit_status", ExitStatusMode.CLASS.value)),
        builtin_cases=bool(raw.get("builtin_cases", True)),
        cases=cases,
        sweeps=tuple(_parse_sweep(entry) for entry in raw.get("sweeps", []) or []),
    )


def parse_case(raw: Mapping[str, Any]) -> TestCase:
    errors = list(Draft7Validator(_CASE).iter_errors(raw))
    if errors:
        raise ConfigError(f"Invalid case definition: {errors[0].message}")
    preconditions = tuple(
        PreCondition(
            path=str(item["path"]),
            content=str(item.get("content", "")).encode("utf-8"),
            preserve=bool(item.get("preserve", False)),
        )
        for item in raw.get("preconditions", []) or []
    )
    trailer = raw.get("expect_trailer")
    exit_status = raw.get("exit_status")
    try:
        return TestCase(
            label=str(raw["label"]),
            args=tuple(str(arg) for arg in raw.get("args", []) or []),
            input_file=raw.get("input"),
            target=raw.get("target"),
            preconditions=preconditions,
            policy=Policy(raw.get("policy", Policy.STDOUT_ONLY.value)),
            expect_input=raw.get("expect_input"),
            exit_status=ExitStatusMode(exit_status) if exit_status else None,
            output_format=str(raw.get("format", "gzip")),
            output_suffix=raw.get("suffix"),
            stdout_format=raw.get("stdout_format"),
            expect_trailer=tuple(int(v) for v in trailer) if trailer is not None else None,
            tags=tuple(str(tag) for tag in raw.get("tags", []) or []),
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _parse_implementation(name: str, raw: Any, base: Path) -> Implementation:
    if isinstance(raw, str):
        return Implementation(name=name, executable=_resolve_executable(raw, base))
    env = {str(k): str(v) for k, v in (raw.get("env") or {}).items()}
    workdir = raw.get("workdir")
    return Implementation(
        name=name,
        executable=_resolve_executable(str(raw["executable"]), base),
        prepare=_parse_commands(raw.get("prepare")),
        env=env,
        workdir=_resolve_dir(workdir, base) if workdir else base,
    )


def _parse_commands(raw: Optional[Sequence[Any]]) -> tuple[CommandConfig, ...]:
    commands: List[CommandConfig] = []
    for entry in raw or []:
        argv = shlex.split(entry) if isinstance(entry, str) else [str(part) for part in entry]
        if not argv:
            raise ConfigError("prepare commands cannot be empty")
        commands.append(CommandConfig(argv=tuple(argv)))
    return tuple(commands)


def _parse_format(raw: Mapping[str, Any]) -> ContainerFormat:
    """``magic`` is written in hex, e.g. ``"fd377a585a00"`` for xz."""

    name = str(raw["name"])
    try:
        masked = tuple(ByteRange(int(offset), int(length)) for offset, length in raw.get("masked", []) or [])
        magic = bytes.fromhex(str(raw.get("magic", "")))
    except ValueError as exc:
        raise ConfigError(f"format '{name}': {exc}") from exc
    trailer = raw.get("trailer")
    if trailer:
        try:
            struct.calcsize(trailer)
        except struct.error as exc:
            raise ConfigError(f"format '{name}': invalid trailer layout '{trailer}': {exc}") from exc
    return ContainerFormat(
        name=name,
        suffix=str(raw["suffix"]),
        masked=masked,
        trailer=trailer,
        magic=magic,
    )


def _check_formats(case: TestCase) -> None:
    for name in (case.output_format, case.stdout_format):
        if not name:
            continue
        try:
            get_format(name)
        except KeyError as exc:
            raise ConfigError(f"case '{case.label}': {exc.args[0]}") from exc


def _parse_sweep(raw: Mapping[str, Any]) -> FixtureSweep:
    return FixtureSweep(
        label_prefix=str(raw["label"]),
        args=tuple(str(arg) for arg in raw["args"]),
        policy=Policy(raw.get("policy", Policy.STDOUT_AND_OUTPUT_FILE.value)),
        pattern=str(raw.get("pattern", "*")),
        tags=tuple(str(tag) for tag in raw.get("tags", []) or []),
    )


def _resolve_dir(value: str, base: Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def _resolve_executable(value: str, base: Path) -> str:
    """Relative paths are anchored at the config directory; bare names use PATH."""

    if "/" not in value:
        return value
    return str(_resolve_dir(value, base))


def build_config(
    *,
    reference: str,
    candidate: str,
    overrides: Optional[Dict[str, Any]] = None,
    base: Optional[Path] = None,
) -> HarnessConfig:
    """Assemble a configuration from command-line values alone."""

    raw: Dict[str, Any] = {"reference": reference, "candidate": candidate}
    raw.update({key: value for key, value in (overrides or {}).items() if value is not None})
    return parse_config(raw, base or Path.cwd())
