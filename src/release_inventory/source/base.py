"""
Release source interfaces.

Goal
Keep the compiler independent of where releases come from.

A release source answers two questions:
which versions exist up to a maximum, and what is the manifest bundle of one
version. The default implementation lists git tags and downloads the bundle over
http. Tests and air gapped builds use a directory of bundles instead.

We keep the interfaces narrow so they are easy to fake in tests.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from release_inventory.core.errors import FetchFailed
from release_inventory.core.semver import canonical, compare, require_canonical

_TAG_REF_PREFIX = "refs/tags/"


class ReleaseSource(Protocol):
    """
    Release source interface.

    list_versions returns canonical versions between the source floor and
    max_version, both inclusive.

    fetch_manifest returns the raw bundle for one version or raises FetchFailed.
    """

    def list_versions(self, max_version: str) -> set[str]:
        """List published release versions up to max_version."""

    def fetch_manifest(self, version: str) -> bytes:
        """Download the manifest bundle for one version."""


class HttpClient(Protocol):
    """Simple http client interface for testability."""

    def get_bytes(self, url: str, headers: dict[str, str]) -> bytes:
        """Return the response body. Non success statuses raise FetchFailed."""


class TagLister(Protocol):
    """Lists the tag refs of a remote repository."""

    def list_refs(self, repo_url: str) -> list[str]:
        """Return raw ref lines such as '<sha>\\trefs/tags/v1.0.0'."""


def in_range(version: str, min_version: str, max_version: str) -> bool:
    """True when min_version <= version <= max_version."""
    return compare(min_version, version) <= 0 and compare(version, max_version) <= 0


def filter_versions(
    tags: Iterable[str],
    min_version: str,
    max_version: str,
) -> set[str]:
    """
    Keep the tags that are semantic versions inside [min_version, max_version].

    Returned versions are canonical. Non semver tags are skipped silently,
    repositories carry plenty of them.
    """
    lo = require_canonical(min_version)
    hi = require_canonical(max_version)

    out: set[str] = set()
    for tag in tags:
        version = canonical(tag)
        if version is None:
            continue
        if in_range(version, lo, hi):
            out.add(version)
    return out


def filter_release_tags(
    refs: Iterable[str],
    min_version: str,
    max_version: str,
) -> set[str]:
    """
    Parse git ls-remote output and keep release versions in range.

    Each non empty line must look like '<sha>\\trefs/tags/<tag>'.
    Anything else means the command output is not what we think it is, so we
    raise FetchFailed instead of building a catalog from a guess.
    """
    tags: list[str] = []
    for line in refs:
        line = line.strip()
        if not line:
            continue

        parts = line.split(_TAG_REF_PREFIX)
        if len(parts) != 2:
            raise FetchFailed(f"unexpected output from git ls-remote: {line}")

        tags.append(parts[1])

    return filter_versions(tags, min_version, max_version)
