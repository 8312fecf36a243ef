"""Equivalence policies deciding whether two outcomes behave identically."""
from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

import numpy as np

from .formats import ContainerFormat, get_format, read_trailer
from .models import ExitStatusMode, Policy, TestCase
from .outcome import InvocationOutcome

DIFF_CONTEXT_LINES = 40
HEX_EXCERPT_BYTES = 16


class Channel(str, Enum):
    """Observable channel on which two implementations diverged."""

    STDOUT = "stdout"
    STDERR = "stderr"
    EXIT_STATUS = "exit-status"
    OUTPUT_FILE_BYTES = "output-file-bytes"
    OUTPUT_FILE_PRESENCE = "output-file-presence"
    OUTPUT_FILE_TRAILER = "output-file-trailer"
    INPUT_FILE_SURVIVAL = "input-file-survival"
    PRECONDITION_PRESERVED = "precondition-preserved"


@dataclass(frozen=True)
class ChannelMismatch:
    channel: Channel
    detail: str
    offset: Optional[int] = None


@dataclass(frozen=True)
class Match:
    """Both implementations behaved identically under the policy."""

    @property
    def matched(self) -> bool:
        return True


@dataclass(frozen=True)
class Mismatch:
    """Every diverging channel, in comparison order."""

    reasons: Tuple[ChannelMismatch, ...]

    @property
    def matched(self) -> bool:
        return False

    @property
    def channels(self) -> Tuple[Channel, ...]:
        return tuple(reason.channel for reason in self.reasons)


Verdict = Union[Match, Mismatch]


@dataclass(frozen=True)
class ByteComparison:
    """Result of a (possibly masked) byte-for-byte comparison."""

    equal: bool
    reference_size: int
    candidate_size: int
    differing: int = 0
    first_offset: Optional[int] = None


@dataclass(frozen=True)
class ComparisonPolicy:
    """Everything the comparator needs to judge one case."""

    kind: Policy = Policy.STDOUT_ONLY
    exit_status: ExitStatusMode = ExitStatusMode.CLASS
    output_format: Optional[ContainerFormat] = None
    stdout_format: Optional[ContainerFormat] = None
    expect_input: Optional[bool] = None
    expect_trailer: Optional[Tuple[int, ...]] = None
    preserved: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def for_case(
        cls, case: TestCase, *, default_exit_status: ExitStatusMode = ExitStatusMode.CLASS
    ) -> "ComparisonPolicy":
        return cls(
            kind=case.policy,
            exit_status=case.exit_status or default_exit_status,
            output_format=get_format(case.output_format),
            stdout_format=get_format(case.stdout_format) if case.stdout_format else None,
            expect_input=case.expect_input,
            expect_trailer=case.expect_trailer,
            preserved=tuple(pre.path for pre in case.preconditions if pre.preserve),
        )


def compare(
    reference: InvocationOutcome,
    candidate: InvocationOutcome,
    policy: ComparisonPolicy,
) -> Verdict:
    """Compare two outcomes and collect all diverging channels."""

    reasons: List[ChannelMismatch] = []
    reasons.extend(_compare_console(reference, candidate, policy))
    reasons.extend(_compare_exit_status(reference, candidate, policy.exit_status))
    if policy.kind is Policy.STDOUT_AND_OUTPUT_FILE:
        reasons.extend(_compare_output_file(reference, candidate, policy))
    elif policy.kind is Policy.STDOUT_AND_DELETION:
        reasons.extend(_check_input_survival(reference, policy.expect_input))
        reasons.extend(_check_input_survival(candidate, policy.expect_input))
    for path in policy.preserved:
        reasons.extend(_check_preserved(reference, path))
        reasons.extend(_check_preserved(candidate, path))
    if reasons:
        return Mismatch(reasons=tuple(reasons))
    return Match()


def compare_bytes(
    reference: bytes, candidate: bytes, fmt: Optional[ContainerFormat] = None
) -> ByteComparison:
    """Byte-exact comparison ignoring the offsets ``fmt`` masks out.

    Files of different length never match; the first differing offset then
    points at the end of the shorter one when the common prefix agrees.
    The mask only applies when both buffers carry the format's magic number,
    so diagnostics written where a container was expected compare exactly.
    """

    ref = np.frombuffer(reference, dtype=np.uint8)
    cand = np.frombuffer(candidate, dtype=np.uint8)
    common = min(ref.size, cand.size)
    differs = ref[:common] != cand[:common]
    if fmt is not None and fmt.recognizes(reference) and fmt.recognizes(candidate):
        differs &= fmt.mask(common)
    indices = np.flatnonzero(differs)
    differing = int(indices.size) + abs(int(ref.size) - int(cand.size))
    first: Optional[int] = int(indices[0]) if indices.size else None
    if first is None and ref.size != cand.size:
        first = common
    return ByteComparison(
        equal=differing == 0,
        reference_size=int(ref.size),
        candidate_size=int(cand.size),
        differing=differing,
        first_offset=first,
    )


def _compare_console(
    reference: InvocationOutcome, candidate: InvocationOutcome, policy: ComparisonPolicy
) -> List[ChannelMismatch]:
    reasons: List[ChannelMismatch] = []
    if policy.stdout_format is not None:
        result = compare_bytes(reference.stdout, candidate.stdout, policy.stdout_format)
        if not result.equal:
            reasons.append(
                ChannelMismatch(
                    channel=Channel.STDOUT,
                    detail=_describe_bytes(result, reference.stdout, candidate.stdout),
                    offset=result.first_offset,
                )
            )
    elif reference.stdout != candidate.stdout:
        reasons.append(_text_mismatch(Channel.STDOUT, reference.stdout, candidate.stdout))
    if reference.stderr != candidate.stderr:
        reasons.append(_text_mismatch(Channel.STDERR, reference.stderr, candidate.stderr))
    return reasons


def _compare_exit_status(
    reference: InvocationOutcome, candidate: InvocationOutcome, mode: ExitStatusMode
) -> List[ChannelMismatch]:
    ref_code = reference.exit_status
    cand_code = candidate.exit_status
    if mode is ExitStatusMode.EXACT:
        same = ref_code == cand_code
    else:
        same = (ref_code == 0) == (cand_code == 0)
    if same:
        return []
    return [
        ChannelMismatch(
            channel=Channel.EXIT_STATUS,
            detail=f"reference exited {ref_code}, candidate exited {cand_code} ({mode.value} match)",
        )
    ]


def _compare_output_file(
    reference: InvocationOutcome, candidate: InvocationOutcome, policy: ComparisonPolicy
) -> List[ChannelMismatch]:
    ref_data = reference.output_file
    cand_data = candidate.output_file
    name = reference.output_path or candidate.output_path or "output"
    if ref_data is None and cand_data is None:
        return []
    if ref_data is None or cand_data is None:
        produced = "candidate" if ref_data is None else "reference"
        return [
            ChannelMismatch(
                channel=Channel.OUTPUT_FILE_PRESENCE,
                detail=f"only the {produced} left '{name}' behind",
            )
        ]
    reasons: List[ChannelMismatch] = []
    result = compare_bytes(ref_data, cand_data, policy.output_format)
    if not result.equal:
        reasons.append(
            ChannelMismatch(
                channel=Channel.OUTPUT_FILE_BYTES,
                detail=f"'{name}': " + _describe_bytes(result, ref_data, cand_data),
                offset=result.first_offset,
            )
        )
    if policy.expect_trailer is not None and policy.output_format is not None:
        for outcome, data in ((reference, ref_data), (candidate, cand_data)):
            trailer = read_trailer(policy.output_format, data)
            if trailer != tuple(policy.expect_trailer):
                reasons.append(
                    ChannelMismatch(
                        channel=Channel.OUTPUT_FILE_TRAILER,
                        detail=(
                            f"{outcome.implementation or 'implementation'} trailer {trailer} "
                            f"!= expected {tuple(policy.expect_trailer)}"
                        ),
                    )
                )
    return reasons


def _check_input_survival(
    outcome: InvocationOutcome, expect_input: Optional[bool]
) -> List[ChannelMismatch]:
    if expect_input is None:
        return []
    label = outcome.implementation or "implementation"
    name = outcome.input_path or "input"
    present = outcome.input_present
    if expect_input and not present:
        return [
            ChannelMismatch(
                channel=Channel.INPUT_FILE_SURVIVAL,
                detail=f"{label} removed '{name}' but it should have been kept",
            )
        ]
    if not expect_input and present:
        return [
            ChannelMismatch(
                channel=Channel.INPUT_FILE_SURVIVAL,
                detail=f"{label} left '{name}' behind but it should have been deleted",
            )
        ]
    if expect_input and name in outcome.changes.modified:
        return [
            ChannelMismatch(
                channel=Channel.INPUT_FILE_SURVIVAL,
                detail=f"{label} kept '{name}' but changed its content",
            )
        ]
    return []


def _check_preserved(outcome: InvocationOutcome, path: str) -> List[ChannelMismatch]:
    before = outcome.before.get(path)
    after = outcome.after.get(path)
    if before is not None and before == after:
        return []
    label = outcome.implementation or "implementation"
    return [
        ChannelMismatch(
            channel=Channel.PRECONDITION_PRESERVED,
            detail=f"{label} modified pre-existing '{path}'",
        )
    ]


def _text_mismatch(channel: Channel, reference: bytes, candidate: bytes) -> ChannelMismatch:
    ref_lines = reference.decode("utf-8", errors="replace").splitlines(keepends=True)
    cand_lines = candidate.decode("utf-8", errors="replace").splitlines(keepends=True)
    lines = list(
        difflib.unified_diff(
            ref_lines, cand_lines, fromfile=f"reference.{channel.value}", tofile=f"candidate.{channel.value}"
        )
    )
    if len(lines) > DIFF_CONTEXT_LINES:
        lines = lines[:DIFF_CONTEXT_LINES] + [f"... ({len(lines) - DIFF_CONTEXT_LINES} more diff lines)\n"]
    offset = compare_bytes(reference, candidate).first_offset
    text = "".join(line if line.endswith("\n") else line + "\n" for line in lines)
    return ChannelMismatch(channel=channel, detail=text.rstrip("\n"), offset=offset)


def _describe_bytes(result: ByteComparison, reference: bytes, candidate: bytes) -> str:
    parts = [f"{result.differing} byte(s) differ"]
    if result.reference_size != result.candidate_size:
        parts.append(f"size {result.reference_size} vs {result.candidate_size}")
    if result.first_offset is not None:
        start = result.first_offset
        end = start + HEX_EXCERPT_BYTES
        parts.append(
            f"first at offset {start}: reference={reference[start:end].hex(' ') or '<eof>'} "
            f"candidate={candidate[start:end].hex(' ') or '<eof>'}"
        )
    return "; ".join(parts)
