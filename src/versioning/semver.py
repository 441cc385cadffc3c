"""Semantic version parsing, ordering and patch arithmetic."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Iterable, Optional

import semantic_version

from errors import EmptyVersionSet, MalformedVersion


@functools.total_ordering
@dataclass(frozen=True)
class Semver:
    """A ``major.minor.patch`` version with an opaque pre-release/build tail."""

    major: int
    minor: int
    patch: int
    tail: str = ""

    @property
    def version_string(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}{self.tail}"

    def __str__(self) -> str:
        return self.version_string

    def __lt__(self, other: "Semver") -> bool:
        if not isinstance(other, Semver):
            return NotImplemented
        return compare(self, other) < 0


def parse_tolerant(s: str) -> Optional[Semver]:
    """Parse ``s`` or return None when it is not a valid version."""
    if not isinstance(s, str):
        return None
    try:
        parsed = semantic_version.Version(s)
    except ValueError:
        return None
    core = f"{parsed.major}.{parsed.minor}.{parsed.patch}"
    if not s.startswith(core):
        return None
    return Semver(parsed.major, parsed.minor, parsed.patch, s[len(core):])


def parse_strict(s: str) -> Semver:
    """Parse ``s``, raising MalformedVersion when it is not a valid version."""
    version = parse_tolerant(s)
    if version is None:
        raise MalformedVersion(f"Unexpected semver: {s!r}")
    return version


def _compare_tails(a: str, b: str) -> int:
    # A release outranks any pre-release tail; tails otherwise compare as plain strings.
    if a == b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    return -1 if a < b else 1


def compare(a: Semver, b: Semver) -> int:
    """Return -1, 0 or 1 as ``a`` is less than, equal to or greater than ``b``."""
    left = (a.major, a.minor, a.patch)
    right = (b.major, b.minor, b.patch)
    if left != right:
        return -1 if left < right else 1
    return _compare_tails(a.tail, b.tail)


def next_patch(version: Semver) -> Semver:
    """Return the version with patch incremented and no tail."""
    return Semver(version.major, version.minor, version.patch + 1)


def max_of(versions: Iterable[str]) -> Semver:
    """Return the highest parseable version, ignoring malformed entries."""
    parsed = [v for v in (parse_tolerant(s) for s in versions) if v is not None]
    if not parsed:
        raise EmptyVersionSet("No parseable versions found")
    return functools.reduce(lambda best, v: v if compare(v, best) > 0 else best, parsed)
