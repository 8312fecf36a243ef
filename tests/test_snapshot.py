from __future__ import annotations

from pathlib import Path

from gzconform.core.snapshot import ABSENT, FileState, diff, snapshot


def test_snapshot_tracks_only_requested_paths(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_bytes(b"a")
    (tmp_path / "unrelated.txt").write_bytes(b"x")
    state = snapshot(tmp_path, ["a.txt", "a.txt.gz"])
    assert set(state) == {"a.txt", "a.txt.gz"}
    assert state["a.txt"] == FileState(exists=True, content=b"a")
    assert state["a.txt.gz"] is ABSENT


def test_diff_reports_created_removed_and_modified(tmp_path: Path) -> None:
    (tmp_path / "input.txt").write_bytes(b"data")
    (tmp_path / "existing.gz").write_bytes(b"")
    tracked = ["input.txt", "input.txt.gz", "existing.gz"]
    before = snapshot(tmp_path, tracked)
    (tmp_path / "input.txt").unlink()
    (tmp_path / "input.txt.gz").write_bytes(b"\x1f\x8b")
    (tmp_path / "existing.gz").write_bytes(b"new")
    after = snapshot(tmp_path, tracked)
    changes = diff(before, after)
    assert changes.created == {"input.txt.gz"}
    assert changes.removed == {"input.txt"}
    assert changes.modified == {"existing.gz"}
    assert not changes.empty


def test_diff_of_identical_snapshots_is_empty(tmp_path: Path) -> None:
    (tmp_path / "keep.txt").write_bytes(b"same")
    before = snapshot(tmp_path, ["keep.txt"])
    assert diff(before, snapshot(tmp_path, ["keep.txt"])).empty
