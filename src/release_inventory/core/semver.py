"""
Semantic version helpers.

Release tags look like v1.9.0 or v1.2.0-alpha.1.

canonical
Returns the canonical vMAJOR.MINOR.PATCH[-PRERELEASE] form, or None when the
string is not a semantic version. v1 and v1.2 are shorthand for v1.0.0 and
v1.2.0. Build metadata is dropped.

Ordering
Semantic version precedence. The numeric triple compares first, a pre-release
sorts before its release, and pre-release identifiers compare left to right:
numeric ones as integers, alphanumeric ones as ASCII, numeric before
alphanumeric, and a shorter list before a longer one it prefixes.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

from release_inventory.core.errors import InvalidVersion

_NUM = r"(0|[1-9][0-9]*)"
_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"

_SEMVER_RE = re.compile(
    rf"^v{_NUM}(?:\.{_NUM}(?:\.{_NUM}(?:-({_IDENT}(?:\.{_IDENT})*))?)?)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

_CANONICAL_RE = re.compile(rf"^v{_NUM}\.{_NUM}\.{_NUM}(?:-({_IDENT}(?:\.{_IDENT})*))?$")

VersionKey = Tuple[int, int, int, int, Tuple[Tuple[int, int, str], ...]]


def canonical(version: str) -> Optional[str]:
    """Return the canonical form of version, or None when it is not valid."""
    m = _SEMVER_RE.match(version.strip())
    if m is None:
        return None

    major, minor, patch, pre = m.groups()
    if minor is None or patch is None:
        # shorthand forms carry neither prerelease nor a partial triple
        if "+" in version:
            return None
        minor = minor or "0"
        patch = patch or "0"

    result = f"v{major}.{minor}.{patch}"
    if pre:
        result = f"{result}-{pre}"
    return result


def require_canonical(version: str) -> str:
    """Like canonical, but raise InvalidVersion instead of returning None."""
    result = canonical(version)
    if result is None:
        raise InvalidVersion(f"invalid semantic version: {version!r}")
    return result


def version_key(version: str) -> VersionKey:
    """
    Sort key for canonical versions.

    Two canonical versions have equal keys only when they are the same string.
    Raises InvalidVersion for anything canonical would not return.
    """
    m = _CANONICAL_RE.match(version)
    if m is None:
        raise InvalidVersion(f"invalid semantic version: {version!r}")

    major, minor, patch, pre = m.groups()
    if not pre:
        return int(major), int(minor), int(patch), 1, ()

    idents = tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part) for part in pre.split(".")
    )
    return int(major), int(minor), int(patch), 0, idents


def compare(a: str, b: str) -> int:
    """Return -1, 0 or 1 like a classic comparator."""
    ka, kb = version_key(a), version_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Return versions sorted ascending."""
    return sorted(versions, key=version_key)
