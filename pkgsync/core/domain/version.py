"""
L1 Domain — Package version parsing and ordering (pure).

Managed package versions are always four dot-separated integers:
``major.minor.patch.build``. No pre-release tags, no ranges.
No I/O, no subprocess.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from pkgsync.core.errors import InvalidVersionFormat

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)\.([0-9]+)")

# The package platform stores each component as a 32-bit int
_MAX_COMPONENT = 2**31 - 1


class PackageVersion(NamedTuple):
    """Totally ordered version tuple (lexicographic over components)."""

    major: int
    minor: int
    patch: int
    build: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.build}"


def parse_version(text: str) -> PackageVersion:
    """Parse ``"1.2.3.4"`` into a :class:`PackageVersion`.

    Raises:
        InvalidVersionFormat: If the string is not exactly four
            non-negative integers, or a component overflows.
    """
    if not isinstance(text, str):
        raise InvalidVersionFormat(repr(text), "not a string")

    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise InvalidVersionFormat(text)

    parts = [int(group) for group in match.groups()]
    for part in parts:
        if part > _MAX_COMPONENT:
            raise InvalidVersionFormat(text, f"component {part} overflows")

    return PackageVersion(*parts)


def is_valid_version(text: str) -> bool:
    """Whether ``text`` parses as a package version."""
    try:
        parse_version(text)
    except InvalidVersionFormat:
        return False
    return True


def compare_versions(left: str, right: str) -> int:
    """Compare two version strings.

    Returns:
        ``-1`` if left < right, ``0`` if equal, ``1`` if left > right.
    """
    a = parse_version(left)
    b = parse_version(right)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0
