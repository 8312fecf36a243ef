"""Scratch workspace allocation with guaranteed cleanup."""
from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

from .errors import WorkspaceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScratchWorkspace:
    """One isolated directory; all case paths are relative to ``root``."""

    root: Path

    def path(self, relative: str) -> Path:
        return self.root / relative


class WorkspaceManager:
    """Hands out unique temp directories and tracks the ones still alive."""

    def __init__(self, base_dir: Optional[Path] = None, *, prefix: str = "gzconform-") -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._prefix = prefix
        self._live: Dict[Path, ScratchWorkspace] = {}
        self._lock = threading.Lock()

    def acquire(self) -> ScratchWorkspace:
        try:
            if self._base_dir is not None:
                self._base_dir.mkdir(parents=True, exist_ok=True)
            root = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._base_dir))
        except OSError as exc:
            raise WorkspaceError(f"Unable to allocate scratch workspace: {exc}") from exc
        workspace = ScratchWorkspace(root=root)
        with self._lock:
            self._live[root] = workspace
        logger.debug("acquired workspace %s", root)
        return workspace

    def release(self, workspace: ScratchWorkspace) -> None:
        with self._lock:
            self._live.pop(workspace.root, None)
        try:
            shutil.rmtree(workspace.root)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise WorkspaceError(f"Unable to remove scratch workspace {workspace.root}: {exc}") from exc
        logger.debug("released workspace %s", workspace.root)

    @contextmanager
    def scoped(self) -> Iterator[ScratchWorkspace]:
        workspace = self.acquire()
        try:
            yield workspace
        finally:
            self.release(workspace)

    def release_all(self) -> None:
        with self._lock:
            pending = list(self._live.values())
        for workspace in pending:
            self.release(workspace)

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)
