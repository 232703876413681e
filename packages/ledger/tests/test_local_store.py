"""Tests for the client-side snapshot store."""

import json

from maintup_ledger.local_store import LocalSnapshotStore
from maintup_ledger.models import LocalSnapshot


def test_load_without_file_returns_none(local_store):
    assert local_store.load() is None


def test_save_then_load(local_store, clients, costs):
    local_store.save(LocalSnapshot(clients=clients, costs=costs, unsynced=True))

    loaded = local_store.load()

    assert loaded is not None
    assert loaded.unsynced is True
    assert [c.id for c in loaded.clients] == ["c1", "c2"]
    assert loaded.costs[1].office_category == "Google"


def test_saved_under_storage_key(local_store):
    local_store.save(LocalSnapshot())

    entries = json.loads(local_store.path.read_text())

    assert set(entries) == {"maintup-data"}
    assert entries["maintup-data"]["costGrids"] == []
    assert entries["maintup-data"]["unsynced"] is False


def test_other_keys_untouched(tmp_path):
    path = tmp_path / "local.json"
    path.write_text(json.dumps({"theme": "dark"}))
    store = LocalSnapshotStore(path)

    store.save(LocalSnapshot())
    store.clear()

    assert json.loads(path.read_text()) == {"theme": "dark"}


def test_unreadable_file_returns_none(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("not json")

    assert LocalSnapshotStore(path).load() is None


def test_non_mapping_snapshot_returns_none(tmp_path):
    path = tmp_path / "local.json"
    path.write_text(json.dumps({"maintup-data": "garbage"}))

    assert LocalSnapshotStore(path).load() is None


def test_bad_row_keeps_rest_of_snapshot(tmp_path):
    path = tmp_path / "local.json"
    path.write_text(
        json.dumps(
            {
                "maintup-data": {
                    "clients": [{"id": "c1", "name": "Acme"}],
                    "invoices": [{"id": "1"}],
                    "unsynced": True,
                }
            }
        )
    )

    loaded = LocalSnapshotStore(path).load()

    assert loaded is not None
    assert [c.id for c in loaded.clients] == ["c1"]
    assert loaded.invoices == []
    assert loaded.unsynced is True
