"""
Manifest normalizer.

Purpose
Turn a raw release bundle into a canonical byte string so two releases whose
relevant resources are the same compare equal byte for byte.

What is kept
CustomResourceDefinition, Service and Deployment documents, in input order.
Everything else is dropped.

What is scrubbed
CRD spec.versions holds the per version OpenAPI schemas. It is replaced by an
empty list. CRD status is removed. Comments disappear when the YAML is decoded.
Finally every literal occurrence of the release version is replaced with the
sentinel, after serialization, so image tags, labels and annotations that embed
the version do not split otherwise identical releases.

Canonical YAML
Keys are sorted and converted to strings everywhere in the tree. YAML decoders
may produce non string keys, and a single in memory shape keeps the output
independent of that. Lines are never folded, so swapping the version for the
sentinel can not change the layout of a later re-normalization.
"""

from __future__ import annotations

from typing import Any

import yaml

from release_inventory.core.errors import InvalidVersion, ManifestParseError
from release_inventory.core.types import SENTINEL_VERSION

RETAINED_KINDS = frozenset({"CustomResourceDefinition", "Service", "Deployment"})

DOCUMENT_SEPARATOR = "\n---\n"


def _string_keys(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {str(k): _string_keys(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_string_keys(v) for v in obj]
    return obj


def _scrub_crd(doc: dict[str, Any]) -> None:
    spec = doc.get("spec")
    if isinstance(spec, dict):
        spec["versions"] = []
    doc.pop("status", None)


def _dump(doc: dict[str, Any]) -> str:
    return yaml.safe_dump(
        doc,
        default_flow_style=False,
        sort_keys=True,
        allow_unicode=True,
        width=float("inf"),
    )


def _trim(text: str) -> str:
    """Strip blank lines and dangling separators at both ends."""
    while True:
        stripped = text.strip("\n")
        if stripped.startswith("---\n"):
            stripped = stripped[4:]
        if stripped.endswith("\n---"):
            stripped = stripped[:-4]
        if stripped == "---":
            stripped = ""
        if stripped == text:
            return text
        text = stripped


def decode_documents(raw: bytes | str) -> list[dict[str, Any]]:
    """
    Decode multi document YAML into mappings.

    Empty documents are skipped. Every other document must be a mapping with a
    string kind, otherwise the whole input is rejected. A catalog built from a
    partially understood bundle is worse than no catalog.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestParseError(f"manifest is not valid utf-8: {exc}") from exc

    try:
        loaded = list(yaml.safe_load_all(raw))
    except yaml.YAMLError as exc:
        raise ManifestParseError(f"failed to decode manifest: {exc}") from exc

    docs: list[dict[str, Any]] = []
    for doc in loaded:
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ManifestParseError("manifest document is not a mapping")
        if not isinstance(doc.get("kind"), str):
            raise ManifestParseError("kind is missing from manifest")
        docs.append(_string_keys(doc))

    return docs


def normalize(raw: bytes | str, version: str) -> bytes:
    """
    Return the canonical form of a release bundle.

    version is the release the bundle belongs to. Every occurrence of it in the
    serialized output becomes SENTINEL_VERSION. Passing SENTINEL_VERSION itself
    canonicalizes without scrubbing anything.

    Pure and deterministic. Normalizing an already normalized manifest with the
    sentinel returns it unchanged.
    """
    if not version:
        raise InvalidVersion("normalize requires a non empty version")

    resources: list[str] = []
    for doc in decode_documents(raw):
        kind = doc["kind"]
        if kind not in RETAINED_KINDS:
            continue
        if kind == "CustomResourceDefinition":
            _scrub_crd(doc)
        resources.append(_dump(doc))

    text = DOCUMENT_SEPARATOR.join(r.rstrip("\n") for r in resources)
    text = text.replace(version, SENTINEL_VERSION)
    return _trim(text).encode("utf-8")
