from __future__ import annotations

import threading
from pathlib import Path

import pytest

from gzconform.core.workspace import WorkspaceManager


def test_acquire_returns_unique_directories(tmp_path: Path) -> None:
    manager = WorkspaceManager(tmp_path)
    first = manager.acquire()
    second = manager.acquire()
    assert first.root != second.root
    assert first.root.is_dir() and second.root.is_dir()
    assert manager.live_count == 2
    manager.release_all()
    assert manager.live_count == 0
    assert not first.root.exists()
    assert not second.root.exists()


def test_scoped_releases_on_error(tmp_path: Path) -> None:
    manager = WorkspaceManager(tmp_path)
    seen = []
    with pytest.raises(RuntimeError):
        with manager.scoped() as workspace:
            seen.append(workspace.root)
            workspace.path("leftover.txt").write_text("x")
            raise RuntimeError("boom")
    assert not seen[0].exists()
    assert manager.live_count == 0


def test_release_is_idempotent(tmp_path: Path) -> None:
    manager = WorkspaceManager(tmp_path)
    workspace = manager.acquire()
    manager.release(workspace)
    manager.release(workspace)
    assert not workspace.root.exists()


def test_concurrent_workspaces_do_not_see_each_other(tmp_path: Path) -> None:
    manager = WorkspaceManager(tmp_path)
    barrier = threading.Barrier(2)
    observed = {}

    def worker(name: str) -> None:
        with manager.scoped() as workspace:
            target = workspace.path("test-word.txt.gz")
            target.write_text(name)
            barrier.wait()
            observed[name] = (target.read_text(), sorted(p.name for p in workspace.root.iterdir()))

    threads = [threading.Thread(target=worker, args=(name,)) for name in ("one", "two")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert observed["one"] == ("one", ["test-word.txt.gz"])
    assert observed["two"] == ("two", ["test-word.txt.gz"])
