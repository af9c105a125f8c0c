from __future__ import annotations

from pathlib import Path

import pytest

from release_inventory.core.errors import InventoryReadError
from release_inventory.core.types import SENTINEL_VERSION, InventoryRecord
from release_inventory.inventory import store
from release_inventory.manifest.normalizer import normalize

from bundles import make_bundle


def make_record() -> InventoryRecord:
    record = InventoryRecord(latest_version="v1.10.0")
    for version in ["v1.10.0", "v1.9.1", "v1.9.0"]:
        record.add_release(version, normalize(make_bundle(version), version))
    record.add_release("v1.2.0", normalize(make_bundle("v1.2.0", replicas=3), "v1.2.0"))
    return record


def test_serialize_groups_and_orders_blocks():
    text = store.serialize(make_record())
    lines = text.splitlines()

    assert lines[0] == "# [CHK_LATEST_VERSION]: v1.10.0"
    assert lines[1] == "---"

    markers = [line for line in lines if line.startswith("# [CHK_VERSIONS]: ")]
    assert markers == [
        "# [CHK_VERSIONS]: v1.2.0",
        "# [CHK_VERSIONS]: v1.9.0, v1.9.1, v1.10.0",
    ]
    assert text.endswith("\n---\n")
    assert SENTINEL_VERSION in text
    assert "controller:v1.9" not in text


def test_parse_restores_record():
    record = make_record()
    parsed = store.parse(store.serialize(record))

    assert parsed.latest_version == record.latest_version
    assert parsed.versions == record.versions
    assert parsed.manifests == record.manifests


def test_round_trip_is_byte_identical(tmp_path: Path):
    path = tmp_path / "inventory.yaml"
    store.write(path, make_record())
    first = path.read_bytes()

    store.write(path, store.read(path))
    assert path.read_bytes() == first


def test_empty_record_round_trip():
    text = store.serialize(InventoryRecord.empty())
    assert text == "# [CHK_LATEST_VERSION]: v0.0.0\n---\n"

    parsed = store.parse(text)
    assert parsed.versions == {}
    assert parsed.manifests == {}
    assert store.serialize(parsed) == text


def test_unreferenced_manifests_are_not_written():
    record = make_record()
    record.manifests["deadbeefdeadbeef"] = b"kind: Service"

    text = store.serialize(record)
    assert text.count("# [CHK_VERSIONS]: ") == 2
    assert "deadbeef" not in text


def test_parse_canonicalizes_versions():
    text = "# [CHK_LATEST_VERSION]: v1.3\n---\n# [CHK_VERSIONS]: v1.1, v1.0.0+meta\nkind: Service\n---\n"
    record = store.parse(text)

    assert record.latest_version == "v1.3.0"
    assert sorted(record.versions) == ["v1.0.0", "v1.1.0"]
    assert len(record.manifests) == 1


def test_read_missing_file_raises(tmp_path: Path):
    with pytest.raises(InventoryReadError):
        store.read(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "no newline at all",
        "# [CHK_LATEST_VERSION]: not-a-version\n---\n",
        "# [CHK_LATEST_VERSION]: v1.0.0\n---\n# [CHK_VERSIONS]: v1.0.0, bogus\nkind: Service\n---\n",
        "# [CHK_LATEST_VERSION]: v1.0.0\n---\n# [CHK_VERSIONS]: \nkind: Service\n---\n",
        "# [CHK_LATEST_VERSION]: v1.0.0\n---\n# [CHK_VERSIONS]: v1.0.0\nmetadata: {name: x}\n---\n",
        "# [CHK_LATEST_VERSION]: v1.0.0\n---\n# [CHK_VERSIONS]: v1.0.0",
    ],
)
def test_parse_malformed_inventory_raises(text):
    with pytest.raises(InventoryReadError):
        store.parse(text)


def test_iter_blocks_returns_raw_manifests():
    text = "# [CHK_LATEST_VERSION]: v1.1.0\n---\n# [CHK_VERSIONS]: v1.0.0, v1.1.0\nkind: Service\n---\n"
    latest, blocks = store.iter_blocks(text)

    assert latest == "v1.1.0"
    assert len(blocks) == 1
    assert blocks[0].versions == ("v1.0.0", "v1.1.0")
    assert blocks[0].manifest == b"kind: Service\n---\n"


def test_semver_prereleases_order_and_round_trip():
    record = InventoryRecord(latest_version="v1.5.0")
    for version in ["v1.5.0", "v1.5.0-foo", "v1.5.0-1"]:
        record.add_release(version, normalize(make_bundle(version), version))

    text = store.serialize(record)
    assert "# [CHK_VERSIONS]: v1.5.0-1, v1.5.0-foo, v1.5.0\n" in text

    parsed = store.parse(text)
    assert parsed.versions == record.versions
    assert store.serialize(parsed) == text
