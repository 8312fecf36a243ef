"""Exception hierarchy separating infrastructure failures from tool behavior."""
from __future__ import annotations


class HarnessError(Exception):
    """Base class for every error raised by the harness itself."""


class HarnessFatalError(HarnessError):
    """Infrastructure failure that aborts the whole run."""


class ExecutableError(HarnessFatalError):
    """Executable is missing, not a file, or cannot be started."""


class InvocationTimeout(HarnessFatalError):
    """Child process exceeded its time budget and was killed."""

    def __init__(self, executable: str, timeout: float) -> None:
        super().__init__(f"'{executable}' did not finish within {timeout:g}s and was killed")
        self.executable = executable
        self.timeout = timeout


class WorkspaceError(HarnessFatalError):
    """Scratch directory could not be allocated or removed."""


class PrepareError(HarnessFatalError):
    """A prepare (build) command failed before the first case ran."""


class SetupError(HarnessError):
    """Per-case precondition or fixture could not be set up; the run continues."""


class ArtifactError(HarnessFatalError):
    """Failure artifacts could not be written to the results directory."""
