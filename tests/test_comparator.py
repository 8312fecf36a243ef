from __future__ import annotations

import gzip
from typing import Optional

from gzconform.core import (
    Channel,
    ComparisonPolicy,
    ExitStatusMode,
    GZIP,
    InvocationOutcome,
    Match,
    Mismatch,
    Policy,
    PreCondition,
    TestCase,
    compare,
)
from gzconform.core.comparator import compare_bytes
from gzconform.core.snapshot import ABSENT, FileState

INPUT = "test-word.txt"
OUTPUT = "test-word.txt.gz"


def _outcome(
    name: str,
    *,
    exit_status: int = 0,
    stdout: bytes = b"",
    stderr: bytes = b"",
    output: Optional[bytes] = None,
    input_after: Optional[bytes] = b"word\n",
    before_extra: Optional[dict] = None,
    after_extra: Optional[dict] = None,
) -> InvocationOutcome:
    before = {INPUT: FileState(True, b"word\n"), OUTPUT: ABSENT}
    after = {
        INPUT: FileState(True, input_after) if input_after is not None else ABSENT,
        OUTPUT: FileState(True, output) if output is not None else ABSENT,
    }
    before.update(before_extra or {})
    after.update(after_extra or {})
    return InvocationOutcome(
        implementation=name,
        exit_status=exit_status,
        stdout=stdout,
        stderr=stderr,
        before=before,
        after=after,
        input_path=INPUT,
        output_path=OUTPUT,
    )


def _gzip_bytes(payload: bytes = b"word\n") -> bytes:
    return gzip.compress(payload, compresslevel=1, mtime=0)


def _output_policy(**kwargs) -> ComparisonPolicy:
    return ComparisonPolicy(kind=Policy.STDOUT_AND_OUTPUT_FILE, output_format=GZIP, **kwargs)


def test_identical_console_output_matches() -> None:
    reference = _outcome("reference", stdout=b"usage\n", stderr=b"warn\n", exit_status=1)
    candidate = _outcome("candidate", stdout=b"usage\n", stderr=b"warn\n", exit_status=1)
    verdict = compare(reference, candidate, ComparisonPolicy())
    assert isinstance(verdict, Match)
    assert verdict.matched


def test_stderr_difference_is_reported_with_diff() -> None:
    reference = _outcome("reference", stderr=b"gzip: test.txt: No such file or directory\n")
    candidate = _outcome("candidate", stderr=b"gzip: test.txt: not found\n")
    verdict = compare(reference, candidate, ComparisonPolicy())
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.STDERR,)
    assert "-gzip: test.txt: No such file or directory" in verdict.reasons[0].detail
    assert "+gzip: test.txt: not found" in verdict.reasons[0].detail


def test_same_text_on_different_stream_mismatches_both_channels() -> None:
    reference = _outcome("reference", stdout=b"usage\n")
    candidate = _outcome("candidate", stderr=b"usage\n")
    verdict = compare(reference, candidate, ComparisonPolicy())
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.STDOUT, Channel.STDERR)


def test_exit_status_class_relaxation() -> None:
    reference = _outcome("reference", exit_status=1)
    candidate = _outcome("candidate", exit_status=2)
    assert compare(reference, candidate, ComparisonPolicy()).matched
    exact = compare(reference, candidate, ComparisonPolicy(exit_status=ExitStatusMode.EXACT))
    assert isinstance(exact, Mismatch)
    assert exact.channels == (Channel.EXIT_STATUS,)
    success_vs_failure = compare(_outcome("reference"), candidate, ComparisonPolicy())
    assert isinstance(success_vs_failure, Mismatch)


def test_output_differing_only_in_masked_bytes_matches() -> None:
    original = _gzip_bytes()
    varied = bytearray(original)
    varied[4:8] = b"\x12\x34\x56\x78"
    varied[9] = 0x0B
    verdict = compare(
        _outcome("reference", output=original),
        _outcome("candidate", output=bytes(varied)),
        _output_policy(),
    )
    assert isinstance(verdict, Match)


def test_output_differing_outside_mask_mismatches() -> None:
    original = _gzip_bytes()
    varied = bytearray(original)
    varied[8] ^= 0x01  # XFL is not masked
    verdict = compare(
        _outcome("reference", output=original),
        _outcome("candidate", output=bytes(varied)),
        _output_policy(),
    )
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.OUTPUT_FILE_BYTES,)
    assert verdict.reasons[0].offset == 8
    assert "1 byte(s) differ" in verdict.reasons[0].detail


def test_plain_text_stdout_is_not_masked_as_gzip() -> None:
    reference = _outcome("reference", stdout=b"gzip: compressed data not written\n", exit_status=1)
    candidate = _outcome("candidate", stdout=b"gzipXXXXmXressed data not written\n", exit_status=1)
    verdict = compare(reference, candidate, ComparisonPolicy(stdout_format=GZIP))
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.STDOUT,)
    assert verdict.reasons[0].offset == 4


def test_mask_requires_magic_on_both_sides() -> None:
    original = _gzip_bytes()
    varied = bytearray(original)
    varied[4:8] = b"\x12\x34\x56\x78"
    assert compare_bytes(original, bytes(varied), GZIP).equal
    assert not compare_bytes(b"xx" + original[2:], b"xx" + bytes(varied[2:]), GZIP).equal


def test_trailer_difference_is_caught() -> None:
    original = _gzip_bytes()
    varied = bytearray(original)
    varied[-1] ^= 0x01
    result = compare_bytes(original, bytes(varied), GZIP)
    assert not result.equal
    assert result.first_offset == len(original) - 1


def test_length_difference_mismatches() -> None:
    original = _gzip_bytes()
    result = compare_bytes(original, original + b"\x00", GZIP)
    assert not result.equal
    assert result.first_offset == len(original)
    assert result.differing == 1


def test_output_presence_mismatch() -> None:
    verdict = compare(
        _outcome("reference", output=_gzip_bytes()),
        _outcome("candidate", output=None),
        _output_policy(),
    )
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.OUTPUT_FILE_PRESENCE,)
    assert "reference" in verdict.reasons[0].detail


def test_all_diverging_channels_are_reported() -> None:
    reference = _outcome("reference", stdout=b"a\n", stderr=b"", exit_status=0, output=_gzip_bytes())
    candidate = _outcome("candidate", stdout=b"b\n", stderr=b"oops\n", exit_status=1, output=None)
    verdict = compare(reference, candidate, _output_policy())
    assert isinstance(verdict, Mismatch)
    assert set(verdict.channels) == {
        Channel.STDOUT,
        Channel.STDERR,
        Channel.EXIT_STATUS,
        Channel.OUTPUT_FILE_PRESENCE,
    }


def test_expected_trailer_is_checked_on_both_outputs() -> None:
    empty = gzip.compress(b"", compresslevel=1, mtime=0)
    policy = _output_policy(expect_trailer=(0, 0))
    assert compare(_outcome("reference", output=empty), _outcome("candidate", output=empty), policy).matched

    broken = bytearray(empty)
    broken[-8:-4] = b"\x01\x00\x00\x00"
    verdict = compare(_outcome("reference", output=empty), _outcome("candidate", output=bytes(broken)), policy)
    assert isinstance(verdict, Mismatch)
    assert Channel.OUTPUT_FILE_TRAILER in verdict.channels
    assert Channel.OUTPUT_FILE_BYTES in verdict.channels


def test_deletion_policy_requires_input_removed() -> None:
    policy = ComparisonPolicy(kind=Policy.STDOUT_AND_DELETION, expect_input=False)
    removed = _outcome("reference", input_after=None)
    kept = _outcome("candidate")
    assert compare(removed, _outcome("candidate", input_after=None), policy).matched
    verdict = compare(removed, kept, policy)
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.INPUT_FILE_SURVIVAL,)
    assert "candidate" in verdict.reasons[0].detail


def test_keep_policy_requires_input_unchanged() -> None:
    policy = ComparisonPolicy(kind=Policy.STDOUT_AND_DELETION, expect_input=True)
    assert compare(_outcome("reference"), _outcome("candidate"), policy).matched
    verdict = compare(_outcome("reference"), _outcome("candidate", input_after=b"changed"), policy)
    assert isinstance(verdict, Mismatch)
    assert "changed its content" in verdict.reasons[0].detail


def test_preserved_precondition_must_stay_untouched() -> None:
    existing = {"old.gz": FileState(True, b"")}
    policy = ComparisonPolicy(preserved=("old.gz",))
    untouched = _outcome("reference", before_extra=existing, after_extra=existing)
    clobbered = _outcome(
        "candidate", before_extra=existing, after_extra={"old.gz": FileState(True, b"\x1f\x8b")}
    )
    assert compare(untouched, untouched, policy).matched
    verdict = compare(untouched, clobbered, policy)
    assert isinstance(verdict, Mismatch)
    assert verdict.channels == (Channel.PRECONDITION_PRESERVED,)


def test_policy_for_case_reads_declared_fields() -> None:
    case = TestCase(
        label="existing",
        args=("-k", "{input}"),
        input_file=INPUT,
        preconditions=(PreCondition(OUTPUT, preserve=True), PreCondition("scratch.txt")),
        policy=Policy.STDOUT_AND_OUTPUT_FILE,
        stdout_format="gzip",
        exit_status=ExitStatusMode.EXACT,
    )
    policy = ComparisonPolicy.for_case(case)
    assert policy.output_format is GZIP
    assert policy.stdout_format is GZIP
    assert policy.preserved == (OUTPUT,)
    assert policy.exit_status is ExitStatusMode.EXACT
    default = ComparisonPolicy.for_case(TestCase(label="plain"), default_exit_status=ExitStatusMode.EXACT)
    assert default.exit_status is ExitStatusMode.EXACT
