"""Ordered test case registry."""
from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple, Union

from gzconform.core.models import Policy, TestCase


@dataclass(frozen=True)
class FixtureSweep:
    """One case per regular file in the fixtures directory.

    Expanded lazily because the fixture set is only known once the fixtures
    directory has been chosen.
    """

    label_prefix: str
    args: Tuple[str, ...]
    policy: Policy = Policy.STDOUT_AND_OUTPUT_FILE
    pattern: str = "*"
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def expand(self, fixtures_dir: Path) -> Tuple[TestCase, ...]:
        if not fixtures_dir.is_dir():
            return tuple()
        cases: List[TestCase] = []
        for path in sorted(fixtures_dir.iterdir(), key=lambda p: p.name):
            if not path.is_file() or not fnmatch.fnmatchcase(path.name, self.pattern):
                continue
            cases.append(
                TestCase(
                    label=f"{self.label_prefix} {path.name}",
                    args=self.args,
                    input_file=path.name,
                    policy=self.policy,
                    tags=self.tags,
                )
            )
        return tuple(cases)


Entry = Union[TestCase, FixtureSweep]


class CaseRegistry:
    """Keeps cases and sweeps in declaration order; labels are unique."""

    def __init__(self) -> None:
        self._entries: List[Entry] = []
        self._labels: Dict[str, TestCase] = {}

    def register(self, case: TestCase) -> TestCase:
        if case.label in self._labels:
            raise ValueError(f"Test case '{case.label}' already registered")
        self._labels[case.label] = case
        self._entries.append(case)
        return case

    def update_or_register(self, case: TestCase) -> TestCase:
        if case.label in self._labels:
            position = self._entries.index(self._labels[case.label])
            self._entries[position] = case
            self._labels[case.label] = case
            return case
        return self.register(case)

    def add_sweep(self, sweep: FixtureSweep) -> FixtureSweep:
        self._entries.append(sweep)
        return sweep

    def get(self, label: str) -> TestCase:
        try:
            return self._labels[label]
        except KeyError as exc:
            raise KeyError(f"Test case '{label}' is not registered") from exc

    def __contains__(self, label: str) -> bool:
        return label in self._labels

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self._labels.values())

    def __len__(self) -> int:
        return len(self._entries)

    def labels(self) -> Iterable[str]:
        return tuple(self._labels.keys())

    def resolve(self, fixtures_dir: Path) -> Tuple[TestCase, ...]:
        """Flatten cases and expanded sweeps, in declaration order."""

        resolved: List[TestCase] = []
        seen: set[str] = set()
        for entry in self._entries:
            expanded = entry.expand(fixtures_dir) if isinstance(entry, FixtureSweep) else (entry,)
            for case in expanded:
                if case.label in seen:
                    raise ValueError(f"Duplicate test case label '{case.label}'")
                seen.add(case.label)
                resolved.append(case)
        return tuple(resolved)


def select(
    cases: Sequence[TestCase],
    *,
    patterns: Sequence[str] = (),
    tags: Sequence[str] = (),
    skip_tags: Sequence[str] = (),
) -> Tuple[TestCase, ...]:
    """Filter cases by label globs and tags, keeping order."""

    matches: List[TestCase] = []
    for case in cases:
        if patterns and not any(fnmatch.fnmatchcase(case.label, pattern) for pattern in patterns):
            continue
        if tags and not set(tags) & set(case.tags):
            continue
        if skip_tags and set(skip_tags) & set(case.tags):
            continue
        matches.append(case)
    return tuple(matches)

