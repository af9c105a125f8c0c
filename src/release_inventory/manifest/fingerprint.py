"""
Manifest fingerprints.

A fingerprint is the 64 bit FNV-1 hash of a canonical manifest, rendered as 16
lowercase hex characters. It is a lookup and deduplication key, not a security
boundary, so a fast non cryptographic hash is enough.
"""

from __future__ import annotations

from release_inventory.core.types import SENTINEL_VERSION
from release_inventory.manifest.normalizer import normalize

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def fingerprint(canonical_manifest: bytes) -> str:
    """Return the FNV-1 64 hex digest of canonical_manifest."""
    h = _FNV64_OFFSET
    for b in canonical_manifest:
        h = (h * _FNV64_PRIME) & _MASK64
        h ^= b
    return f"{h:016x}"


def canonicalize(manifest: bytes | str) -> bytes:
    """Normalize with the sentinel version. This is the stored catalog form."""
    return normalize(manifest, SENTINEL_VERSION)
