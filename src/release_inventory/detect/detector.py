"""
Version detector.

Purpose
Tell which cataloged release produced a set of observed resources.

How matching works
The query is normalized exactly like a release bundle. Live objects still carry
their real version string in image tags, labels and annotations, and the
detector does not know that version upfront. So for every cataloged version
whose literal string occurs in the normalized query, we scrub that version and
canonicalize with the sentinel, the same two steps the compiler applied to the
release. The query as-is is tried too, for fixtures already stamped with the
sentinel and for releases that never embed their version.

Results
One candidate means detected. Several candidates mean those releases have
identical manifests, so we return all of them instead of guessing. None means
the installation matches no cataloged release, for example a newer or patched
install.

The detector never mutates the record and only keeps a read only index built
at construction, so one instance can be shared between threads.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from release_inventory.core.semver import sort_versions
from release_inventory.core.types import DetectionQuery, DetectionResult, InventoryRecord
from release_inventory.manifest.fingerprint import canonicalize, fingerprint
from release_inventory.manifest.normalizer import normalize


class VersionDetector:
    """
    Resolve queries against one loaded catalog.

    The fingerprint to versions index is built once in the constructor.
    """

    def __init__(self, record: InventoryRecord) -> None:
        self._versions = tuple(record.versions)

        index: Dict[str, List[str]] = {}
        for version, fp in record.versions.items():
            index.setdefault(fp, []).append(version)
        self._by_fingerprint: Dict[str, Tuple[str, ...]] = {
            fp: tuple(sort_versions(vs)) for fp, vs in index.items()
        }

    def query_fingerprints(self, query: DetectionQuery) -> List[str]:
        """
        Return every fingerprint the query can be normalized to.

        Raises ManifestParseError when the query is malformed.
        """
        body = canonicalize(query.to_yaml())
        fps = [fingerprint(body)]

        text = body.decode("utf-8")
        for version in self._versions:
            if version in text:
                fps.append(fingerprint(canonicalize(normalize(body, version))))

        return fps

    def detect(self, query: DetectionQuery) -> DetectionResult:
        """Resolve query to a detected, ambiguous or unknown result."""
        by_fp = self._by_fingerprint

        matched = [fp for fp in dict.fromkeys(self.query_fingerprints(query)) if fp in by_fp]
        if not matched:
            return DetectionResult(detected=None)

        candidates = sort_versions({v for fp in matched for v in by_fp[fp]})
        detected = candidates[0] if len(candidates) == 1 else None
        return DetectionResult(
            detected=detected,
            candidates=tuple(candidates),
            fingerprints=tuple(sorted(matched)),
        )


def detect(query: DetectionQuery, record: InventoryRecord) -> DetectionResult:
    """Convenience wrapper for a one off detection."""
    return VersionDetector(record).detect(query)
