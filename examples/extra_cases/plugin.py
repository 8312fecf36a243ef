"""Extra cases for GNU gzip long options.

Load with ``GZCONFORM_PLUGINS=plugin`` while this directory is on ``PYTHONPATH``.
"""
from gzconform.core.models import Policy, TestCase
from gzconform.registry import registry

WORD = "test-word.txt"


def register() -> None:
    for flag in ("--fast", "--best"):
        registry.register(
            TestCase(
                label=f"long option {flag}",
                args=("-k", flag, "{input}"),
                input_file=WORD,
                policy=Policy.STDOUT_AND_OUTPUT_FILE,
                tags=("long-options",),
            )
        )
    registry.register(
        TestCase(
            label="long option --stdout",
            args=("--stdout", "{input}"),
            input_file=WORD,
            policy=Policy.STDOUT_AND_DELETION,
            expect_input=True,
            stdout_format="gzip",
            tags=("long-options",),
        )
    )
