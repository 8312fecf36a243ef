"""Child process execution with byte-exact capture."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .errors import ExecutableError, InvocationTimeout, PrepareError
from .outcome import InvocationOutcome

logger = logging.getLogger(__name__)


def check_executable(executable: str) -> str:
    """Resolve ``executable`` (path or PATH lookup) or raise ExecutableError."""

    if os.sep in executable or (os.altsep and os.altsep in executable):
        path = Path(executable).expanduser()
        if not path.is_file():
            raise ExecutableError(f"Executable not found: {executable}")
        if not os.access(path, os.X_OK):
            raise ExecutableError(f"Executable is not executable: {executable}")
        return str(path.resolve())
    resolved = shutil.which(executable)
    if resolved is None:
        raise ExecutableError(f"Executable '{executable}' not found on PATH")
    return resolved


def invoke(
    executable: str,
    args: Sequence[str],
    working_dir: Path,
    *,
    implementation: str = "",
    argv0: Optional[str] = None,
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
) -> InvocationOutcome:
    """Run ``executable`` with ``args`` inside ``working_dir`` and capture bytes.

    ``argv0`` replaces the program name the child sees, so diagnostics that
    echo it are identical for both implementations.
    """

    argv = [argv0 or executable, *args]
    child_env = os.environ.copy()
    if env:
        child_env.update(env)
    logger.debug("invoke %s argv=%r cwd=%s", executable, argv, working_dir)
    start = time.perf_counter()
    try:
        proc = subprocess.run(
            argv,
            executable=executable,
            cwd=str(working_dir),
            env=child_env,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise InvocationTimeout(executable, float(timeout or 0)) from exc
    except OSError as exc:
        raise ExecutableError(f"Unable to start '{executable}': {exc}") from exc
    duration = time.perf_counter() - start
    logger.debug("%s exited with %s after %.3fs", executable, proc.returncode, duration)
    return InvocationOutcome(
        implementation=implementation,
        exit_status=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
        duration_s=duration,
    )


def run_prepare(
    argv: Sequence[str],
    workdir: Path,
    *,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> None:
    """Run a build/prepare command once; any failure aborts the run."""

    child_env = os.environ.copy()
    if env:
        child_env.update(env)
    logger.debug("prepare %r in %s", list(argv), workdir)
    try:
        proc = subprocess.run(
            list(argv),
            cwd=str(workdir),
            env=child_env,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise PrepareError(f"prepare command '{' '.join(argv)}' timed out") from exc
    except OSError as exc:
        raise PrepareError(f"prepare command '{' '.join(argv)}' could not start: {exc}") from exc
    if proc.returncode != 0:
        raise PrepareError(
            f"prepare command '{' '.join(argv)}' failed (code {proc.returncode}) "
            f"in {workdir}: {proc.stderr.strip() or proc.stdout.strip()}"
        )
