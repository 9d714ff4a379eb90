"""Semver comparison utilities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

# semver.org 2.0 grammar, with the leading 'v' that chart repos commonly use.
_SEMVER_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

_DIGITS_RE = re.compile(r"(\d+)")


@dataclass(frozen=True, order=True)
class SemVer:
    """A parsed semantic version ordered by semver precedence.

    ``is_release`` sorts a pre-release below the release it precedes.
    Pre-release identifiers are stored as ``(0, int)`` for numeric and
    ``(1, str)`` for alphanumeric parts, so numeric ones rank lower and
    ints are never compared with strings.
    """

    major: int
    minor: int
    patch: int
    is_release: bool
    prerelease: tuple[tuple[int, int | str], ...] = ()


def _identifier_key(part: str) -> tuple[int, int | str]:
    if part.isdigit():
        return (0, int(part))
    return (1, part)


def parse_semver(v: str) -> SemVer | None:
    """Parse a strict semver string, or return None.

    Build metadata is ignored for precedence.
    """
    m = _SEMVER_RE.match(v.strip()) if isinstance(v, str) else None
    if m is None:
        return None
    pre = m.group("pre")
    return SemVer(
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        is_release=pre is None,
        prerelease=tuple(_identifier_key(p) for p in pre.split(".")) if pre else (),
    )


def natural_key(s: str) -> tuple:
    """Case-insensitive key that orders embedded numbers numerically."""
    parts = _DIGITS_RE.split(s)
    # split() alternates text/digits, so positions never mix types
    return tuple(int(p) if i % 2 else p.casefold() for i, p in enumerate(parts))


def natural_compare(a: str, b: str) -> int:
    ka, kb = natural_key(a), natural_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def compare_versions(a: str, b: str) -> int:
    """Semver precedence when both sides are semver, else natural order."""
    va, vb = parse_semver(a), parse_semver(b)
    if va is not None and vb is not None:
        if va < vb:
            return -1
        if va > vb:
            return 1
        return 0
    return natural_compare(a, b)


def sort_by_version(
    items: Iterable[T],
    key: Callable[[T], str],
    newest_first: bool = False,
) -> list[T]:
    """Stable sort of arbitrary items by a version-like string."""
    def cmp(x: T, y: T) -> int:
        result = compare_versions(key(x), key(y))
        return -result if newest_first else result

    return sorted(items, key=cmp_to_key(cmp))
