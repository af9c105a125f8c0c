"""
Inventory store.

Reads and writes the persisted catalog. This is the only module that touches
the catalog file.

Format
The file is line oriented so it diffs well in version control.

  # [CHK_LATEST_VERSION]: v1.14.0
  ---
  # [CHK_VERSIONS]: v1.0.0, v1.0.1
  <canonical manifest>
  ---
  # [CHK_VERSIONS]: v1.1.0
  <canonical manifest>
  ---

Versions inside a block are sorted ascending and blocks are ordered by their
lowest version. Writing a record that was just read reproduces the file byte
for byte.

Why re-normalize on read
Stored manifests are re-normalized with the sentinel version so the in memory
fingerprints are computed exactly the way the detector computes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from release_inventory.core.errors import InventoryError, InventoryReadError
from release_inventory.core.semver import canonical
from release_inventory.core.types import (
    LATEST_VERSION_MARKER,
    VERSIONS_MARKER,
    InventoryRecord,
)

_BLOCK_SPLIT = "---\n" + VERSIONS_MARKER


@dataclass(frozen=True)
class RawBlock:
    """One block of the catalog text before any normalization."""

    versions: Tuple[str, ...]
    manifest: bytes


def _parse_version(raw: str) -> str:
    version = canonical(raw.strip())
    if version is None:
        raise InventoryReadError(f"failed to parse version {raw.strip()!r} from inventory")
    return version


def iter_blocks(text: str) -> Tuple[str, List[RawBlock]]:
    """
    Split catalog text into the latest version and its raw blocks.

    Versions are canonicalized, manifests are returned untouched.
    Test fixtures in the same format are loaded with this too.
    """
    head, sep, body = text.partition("\n")
    if not sep:
        raise InventoryReadError("failed to read latest version from first line of inventory")

    head = head.strip()
    if head.startswith(LATEST_VERSION_MARKER.strip()):
        head = head[len(LATEST_VERSION_MARKER.strip()) :]
    latest = canonical(head.strip())
    if latest is None:
        raise InventoryReadError("failed to parse latest version from first line of inventory")

    blocks: List[RawBlock] = []
    for chunk in body.split(_BLOCK_SPLIT):
        if chunk.strip() in ("", "---"):
            continue

        versions_line, sep, manifest = chunk.partition("\n")
        if not sep:
            raise InventoryReadError("failed to read versions from inventory block")

        versions = tuple(_parse_version(v) for v in versions_line.split(","))
        blocks.append(RawBlock(versions=versions, manifest=manifest.encode("utf-8")))

    return latest, blocks


def parse(text: str) -> InventoryRecord:
    """
    Parse catalog text into a fresh InventoryRecord.

    Any problem raises InventoryReadError. A partial record is never returned.
    """
    latest, blocks = iter_blocks(text)

    record = InventoryRecord(latest_version=latest)
    for block in blocks:
        for version in block.versions:
            try:
                record.add_release(version, block.manifest)
            except InventoryError as exc:
                raise InventoryReadError(
                    f"failed to load manifest for versions {', '.join(block.versions)}: {exc}"
                ) from exc

    return record


def serialize(record: InventoryRecord) -> str:
    """Render a record in the persisted format."""
    parts = [f"{LATEST_VERSION_MARKER}{record.latest_version}\n---\n"]
    for group in record.groups():
        parts.append(f"{VERSIONS_MARKER}{', '.join(group.versions)}\n")
        parts.append(group.manifest.decode("utf-8"))
        parts.append("\n---\n")
    return "".join(parts)


def read(path: Path) -> InventoryRecord:
    """Read a catalog file. Missing or malformed files raise InventoryReadError."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InventoryReadError(f"failed to read inventory file {path}: {exc}") from exc

    return parse(text)


def write(path: Path, record: InventoryRecord) -> None:
    """Write a catalog file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(record), encoding="utf-8")
