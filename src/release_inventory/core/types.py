"""
Core types.

This file defines the shared data structures used across the package.

Important design choice
InventoryRecord is a plain value. The compiler receives one and returns a new
one, the detector only reads one. File I/O lives in inventory.store only.

Canonical form
Every manifest stored in a record has been normalized with SENTINEL_VERSION.
That is the same form the detector computes, so fingerprints compare directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from release_inventory.core.errors import ManifestParseError
from release_inventory.core.semver import require_canonical, sort_versions, version_key

SENTINEL_VERSION = "v99.99.99"
MIN_VERSION = "v1.0.0"
EMPTY_LATEST_VERSION = "v0.0.0"

LATEST_VERSION_MARKER = "# [CHK_LATEST_VERSION]: "
VERSIONS_MARKER = "# [CHK_VERSIONS]: "


@dataclass(frozen=True)
class FingerprintGroup:
    """
    One block of the persisted catalog.

    versions is sorted ascending and never empty.
    manifest is the canonical manifest shared by every version in the group.
    """

    fingerprint: str
    versions: Tuple[str, ...]
    manifest: bytes


@dataclass
class InventoryRecord:
    """
    The release catalog.

    latest_version
    High water mark of the last successful compile.

    versions
    Release version to fingerprint. Every known release maps to exactly one.

    manifests
    Fingerprint to canonical manifest. Stored once per fingerprint no matter how
    many versions share it.
    """

    latest_version: str = EMPTY_LATEST_VERSION
    versions: Dict[str, str] = field(default_factory=dict)
    manifests: Dict[str, bytes] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "InventoryRecord":
        """Return a reset catalog with no releases."""
        return cls()

    def copy(self) -> "InventoryRecord":
        """Return an independent copy. Manifest bytes are immutable and shared."""
        return InventoryRecord(
            latest_version=self.latest_version,
            versions=dict(self.versions),
            manifests=dict(self.manifests),
        )

    def add_release(self, version: str, manifest: bytes) -> str:
        """
        Record one release and return its fingerprint.

        The manifest is canonicalized with the sentinel version before hashing,
        so a manifest normalized with its real version and one read back from
        disk end up with the same fingerprint.

        The first manifest stored for a fingerprint wins. Content is identical
        for a given fingerprint by construction.
        """
        # local import, manifest modules import this one
        from release_inventory.manifest.fingerprint import canonicalize, fingerprint

        version = require_canonical(version)
        canonical_manifest = canonicalize(manifest)
        fp = fingerprint(canonical_manifest)

        self.versions[version] = fp
        self.manifests.setdefault(fp, canonical_manifest)
        return fp

    def groups(self) -> List[FingerprintGroup]:
        """
        Return fingerprint groups in persisted order.

        Manifests no version references are garbage and are left out.
        Groups are ordered by their lowest version.
        """
        by_fp: Dict[str, List[str]] = {}
        for version, fp in self.versions.items():
            by_fp.setdefault(fp, []).append(version)

        out: List[FingerprintGroup] = []
        for fp, versions in by_fp.items():
            manifest = self.manifests.get(fp)
            if manifest is None:
                raise KeyError(f"fingerprint {fp} has no stored manifest")
            out.append(
                FingerprintGroup(
                    fingerprint=fp,
                    versions=tuple(sort_versions(versions)),
                    manifest=manifest,
                )
            )

        out.sort(key=lambda g: version_key(g.versions[0]))
        return out


@dataclass(frozen=True)
class DetectionQuery:
    """
    Observed resources for the product actually running.

    documents are decoded Kubernetes objects, each a mapping with a kind.
    Callers build them from a live cluster listing or a test fixture.
    """

    documents: Tuple[Mapping[str, Any], ...]

    @classmethod
    def from_objects(cls, objects: Iterable[Mapping[str, Any]]) -> "DetectionQuery":
        """Build a query from already decoded objects."""
        return cls(documents=tuple(dict(o) for o in objects))

    @classmethod
    def from_yaml(cls, text: bytes | str) -> "DetectionQuery":
        """
        Build a query from multi document YAML.

        Empty documents are skipped. Anything that is not a mapping is rejected.
        """
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ManifestParseError(f"query is not valid utf-8: {exc}") from exc

        try:
            docs = [d for d in yaml.safe_load_all(text) if d is not None]
        except yaml.YAMLError as exc:
            raise ManifestParseError(f"failed to decode query: {exc}") from exc

        for doc in docs:
            if not isinstance(doc, dict):
                raise ManifestParseError("query document is not a mapping")

        return cls(documents=tuple(docs))

    def to_yaml(self) -> str:
        """
        Render the query as multi document YAML in its original order.

        Objects YAML can not represent raise ManifestParseError.
        """
        try:
            return yaml.safe_dump_all(
                [dict(d) for d in self.documents],
                default_flow_style=False,
                sort_keys=False,
            )
        except yaml.YAMLError as exc:
            raise ManifestParseError(f"failed to encode query: {exc}") from exc


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of a detection.

    detected
    The identified version, only when exactly one candidate matched.

    candidates
    Every cataloged version sharing the observed fingerprint, ascending.
    More than one means the releases are manifest identical and we refuse to guess.

    fingerprints
    Matching fingerprints, empty when nothing matched. Usually one.
    """

    detected: Optional[str]
    candidates: Tuple[str, ...] = ()
    fingerprints: Tuple[str, ...] = ()

    @property
    def is_ambiguous(self) -> bool:
        return len(self.candidates) > 1

    @property
    def is_unknown(self) -> bool:
        return not self.candidates
