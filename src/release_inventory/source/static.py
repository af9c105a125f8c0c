"""
Static release source.

Reads release bundles from a local directory. Each file named <version>.yaml
is the bundle of that version, for example v1.9.0.yaml.

This is useful for tests, air gapped builds and for pinning a catalog to a
reviewed set of bundles.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from release_inventory.core.errors import FetchFailed
from release_inventory.core.types import MIN_VERSION
from release_inventory.source.base import ReleaseSource, filter_versions


@dataclass(frozen=True)
class StaticReleaseSource(ReleaseSource):
    """
    Load release bundles from a directory.

    Files whose stem is not a semantic version are ignored.
    """

    directory: Path
    min_version: str = MIN_VERSION

    def list_versions(self, max_version: str) -> set[str]:
        if not self.directory.is_dir():
            raise FetchFailed(f"release directory {self.directory} does not exist")

        stems = [p.stem for p in sorted(self.directory.glob("*.yaml"))]
        return filter_versions(stems, self.min_version, max_version)

    def fetch_manifest(self, version: str) -> bytes:
        path = self.directory / f"{version}.yaml"
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FetchFailed(f"failed to read release bundle {path}: {exc}") from exc
