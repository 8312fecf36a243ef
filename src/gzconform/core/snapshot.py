"""Before/after views of the files a test case cares about."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Mapping, Optional

Snapshot = Mapping[str, "FileState"]


@dataclass(frozen=True)
class FileState:
    exists: bool
    content: Optional[bytes] = None


ABSENT = FileState(exists=False)


@dataclass(frozen=True)
class SnapshotDiff:
    created: FrozenSet[str] = frozenset()
    removed: FrozenSet[str] = frozenset()
    modified: FrozenSet[str] = frozenset()

    @property
    def empty(self) -> bool:
        return not (self.created or self.removed or self.modified)


def snapshot(working_dir: Path, paths: Iterable[str]) -> Snapshot:
    """Read each tracked path under ``working_dir``; untracked files are ignored."""

    states: dict[str, FileState] = {}
    for relative in paths:
        target = Path(working_dir) / relative
        if target.is_file():
            states[relative] = FileState(exists=True, content=target.read_bytes())
        else:
            states[relative] = ABSENT
    return states


def diff(before: Snapshot, after: Snapshot) -> SnapshotDiff:
    created: set[str] = set()
    removed: set[str] = set()
    modified: set[str] = set()
    for path in set(before) | set(after):
        old = before.get(path, ABSENT)
        new = after.get(path, ABSENT)
        if not old.exists and new.exists:
            created.add(path)
        elif old.exists and not new.exists:
            removed.add(path)
        elif old.exists and new.exists and old.content != new.content:
            modified.add(path)
    return SnapshotDiff(
        created=frozenset(created),
        removed=frozenset(removed),
        modified=frozenset(modified),
    )
