"""Built-in case table covering the gzip command-line surface."""
from __future__ import annotations

from gzconform.core.models import Policy, PreCondition, TestCase

from .registry import FixtureSweep

WORD = "test-word.txt"

OUTPUT = Policy.STDOUT_AND_OUTPUT_FILE
DELETION = Policy.STDOUT_AND_DELETION

LEVELS = tuple(range(1, 10))

_CORE_CASES = (
    TestCase(
        label="no arguments",
        args=(),
        stdout_format="gzip",
        tags=("usage",),
    ),
    TestCase(
        label="missing input file",
        args=("-k", "-1", "{input}"),
        target="test.txt",
        policy=OUTPUT,
        tags=("errors",),
    ),
    TestCase(
        label="existing output without force",
        args=("-k", "-1", "{input}"),
        input_file=WORD,
        preconditions=(PreCondition(path=f"{WORD}.gz", preserve=True),),
        policy=OUTPUT,
        tags=("overwrite",),
    ),
    TestCase(
        label="existing output with force",
        args=("-k", "-f", "-1", "{input}"),
        input_file=WORD,
        preconditions=(PreCondition(path=f"{WORD}.gz"),),
        policy=OUTPUT,
        tags=("overwrite",),
    ),
    TestCase(
        label="delete input",
        args=("-f", "-1", "{input}"),
        target="test-temp.txt",
        preconditions=(PreCondition(path="test-temp.txt"),),
        policy=DELETION,
        expect_input=False,
        tags=("deletion",),
    ),
    TestCase(
        label="keep input",
        args=("-k", "-1", "{input}"),
        input_file=WORD,
        policy=DELETION,
        expect_input=True,
        tags=("deletion",),
    ),
    TestCase(label="help menu", args=("-h",), tags=("usage",)),
    TestCase(label="empty bits operand", args=("-b",), tags=("usage", "errors")),
    TestCase(label="incorrect bits operand", args=("-b", "test"), tags=("usage", "errors")),
    TestCase(label="unknown option", args=("-x",), tags=("usage", "errors")),
)

_LEVEL_CASES = tuple(
    TestCase(
        label=f"compression level {level}",
        args=("-k", f"-{level}", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        tags=("level",),
    )
    for level in LEVELS
)

_MODE_CASES = (
    TestCase(
        label="ascii mode",
        args=("-k", "-a", "-1", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        tags=("mode",),
    ),
    TestCase(
        label="stdout mode",
        args=("-k", "-c", "-1", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        stdout_format="gzip",
        tags=("mode",),
    ),
    TestCase(
        label="quiet mode",
        args=("-k", "-q", "-1", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        tags=("mode",),
    ),
    TestCase(
        label="verbose mode",
        args=("-v", "-k", "-f", "-1", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        tags=("mode",),
    ),
    TestCase(
        label="no name",
        args=("-k", "-n", "-1", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        tags=("mode",),
    ),
    TestCase(
        label="save name",
        args=("-k", "-N", "-1", "{input}"),
        input_file=WORD,
        policy=OUTPUT,
        tags=("mode",),
    ),
    TestCase(
        label="custom suffix",
        args=("-k", "-S", ".z", "-1", "{input}"),
        input_file=WORD,
        output_suffix=".z",
        policy=OUTPUT,
        tags=("mode",),
    ),
    TestCase(
        label="test plain file",
        args=("-t", "{input}"),
        input_file=WORD,
        tags=("mode", "errors"),
    ),
    TestCase(
        label="decompress unknown suffix",
        args=("-d", "{input}"),
        input_file=WORD,
        policy=DELETION,
        expect_input=True,
        tags=("mode", "errors"),
    ),
    TestCase(label="license", args=("-L",), tags=("usage",)),
    TestCase(label="version", args=("-V",), tags=("usage",)),
)

# Empty input is where checksum initialization historically diverged: the
# trailer must read CRC-32 0 and ISIZE 0.
_EDGE_CASES = (
    TestCase(
        label="empty input level 1",
        args=("-k", "-1", "{input}"),
        target="empty-input.txt",
        preconditions=(PreCondition(path="empty-input.txt"),),
        policy=OUTPUT,
        expect_trailer=(0, 0),
        tags=("edge", "level"),
    ),
)

BUILTIN_CASES = _CORE_CASES + _LEVEL_CASES + _MODE_CASES + _EDGE_CASES

BUILTIN_SWEEPS = (
    FixtureSweep(
        label_prefix="fixture",
        args=("-k", "-f", "-1", "{input}"),
        tags=("fixtures",),
    ),
)
