from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

from gzconform import bootstrap
from gzconform.config.models import HarnessConfig, Implementation

# Minimal gzip-like tool used as both reference and candidate. BUG selects a
# deliberate divergence so tests can provoke specific mismatches.
FAKE_TOOL = r'''#!__PYTHON__
import gzip
import os
import sys
import time

BUG = "__BUG__"
NAME = "fakezip"


def compress(data, level):
    payload = bytearray(gzip.compress(data, compresslevel=level, mtime=0))
    if BUG == "stamp":
        payload[4:8] = (int(time.time()) | 1).to_bytes(4, "little")
        payload[9] = 0x0B
    if BUG == "payload":
        payload[-9] ^= 0xFF
    if BUG == "trailer":
        payload[-8:-4] = b"\x01\x00\x00\x00"
    if BUG == "hang":
        time.sleep(30)
    return bytes(payload)


def fail(message, code=1):
    sys.stderr.write(NAME + ": " + message + "\n")
    if BUG == "exit":
        return 3
    return code


def main(argv):
    keep = force = to_stdout = verbose = False
    level = 6
    suffix = ".gz"
    files = []
    args = iter(argv)
    for arg in args:
        if arg.startswith("-") and len(arg) > 1:
            flag = arg[1:]
            if flag == "h":
                print("Usage: " + NAME + " [OPTION]... [FILE]...")
                return 0
            if flag in ("L", "V"):
                print(NAME + " 1.0")
                return 0
            if flag == "k":
                keep = True
            elif flag == "f":
                force = True
            elif flag == "c":
                to_stdout = True
            elif flag == "v":
                verbose = True
            elif flag in ("a", "n", "N", "q"):
                pass
            elif flag == "S":
                suffix = next(args)
            elif flag == "b":
                operand = next(args, None)
                if operand is None:
                    return fail("-b requires an operand")
                if not operand.isdigit():
                    return fail("-b operand is not an integer")
            elif flag.isdigit():
                level = int(flag)
            else:
                return fail("unknown option -- '" + flag + "'")
        else:
            files.append(arg)
    if not files:
        sys.stdout.buffer.write(compress(b"", level))
        return 0
    status = 0
    for name in files:
        if not os.path.isfile(name):
            status = fail(name + ": No such file or directory")
            continue
        with open(name, "rb") as handle:
            payload = compress(handle.read(), level)
        if to_stdout:
            sys.stdout.buffer.write(payload)
            continue
        out = name + suffix
        if os.path.exists(out) and not force:
            status = fail(out + " already exists; not overwritten", 2)
            continue
        with open(out, "wb") as handle:
            handle.write(payload)
        if verbose:
            sys.stderr.write(name + ":\t replaced with " + out + "\n")
        if not keep and BUG != "keep":
            os.remove(name)
    return status


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
'''

WORD = b"word\n"


@pytest.fixture(scope="session", autouse=True)
def setup_gzconform() -> None:
    """Bootstrap plugins once for the entire test session."""

    bootstrap()


@pytest.fixture
def make_tool(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable fake compressor; ``bug`` selects a divergence."""

    tools = tmp_path / "tools"
    tools.mkdir()

    def factory(name: str, bug: str = "") -> Path:
        script = tools / name
        script.write_text(
            FAKE_TOOL.replace("__PYTHON__", sys.executable).replace("__BUG__", bug),
            encoding="utf-8",
        )
        script.chmod(0o755)
        return script

    return factory


@pytest.fixture
def fixtures_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "fixtures"
    directory.mkdir()
    (directory / "test-word.txt").write_bytes(WORD)
    (directory / "empty.txt").write_bytes(b"")
    (directory / "binary.bin").write_bytes(bytes(range(256)))
    return directory


@pytest.fixture
def make_config(tmp_path: Path, fixtures_dir: Path, make_tool) -> Callable[..., HarnessConfig]:
    def factory(
        candidate_bug: str = "",
        *,
        workers: int = 1,
        timeout: Optional[float] = 20.0,
        candidate_path: Optional[str] = None,
        **kwargs,
    ) -> HarnessConfig:
        reference = make_tool("reference-tool")
        candidate = candidate_path or str(make_tool("candidate-tool", candidate_bug))
        return HarnessConfig(
            reference=Implementation(name="reference", executable=str(reference)),
            candidate=Implementation(name="candidate", executable=candidate),
            fixtures_dir=fixtures_dir,
            results_dir=tmp_path / "results",
            scratch_dir=tmp_path / "scratch",
            timeout=timeout,
            workers=workers,
            **kwargs,
        )

    return factory
