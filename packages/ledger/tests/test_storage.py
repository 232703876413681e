"""Tests for the JSON document store."""

import json

import pytest

from maintup_ledger.storage import JsonDocumentStore, StoreCorruptedError, empty_document


class TestRead:
    """Tests for loading the document."""

    def test_missing_file_is_empty(self, document_store):
        assert document_store.read() == empty_document()

    def test_blank_file_is_empty(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("  \n")

        assert JsonDocumentStore(path).read() == empty_document()

    def test_missing_collections_default_to_empty(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"clients": [{"id": "1", "name": "Acme"}]}))

        document = JsonDocumentStore(path).read()

        assert document["clients"] == [{"id": "1", "name": "Acme"}]
        assert document["costGrids"] == []

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json")

        with pytest.raises(StoreCorruptedError) as exc_info:
            JsonDocumentStore(path).read()

        assert exc_info.value.path == path

    def test_non_array_collection_raises(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"clients": {"id": "1"}}))

        with pytest.raises(StoreCorruptedError):
            JsonDocumentStore(path).read()


class TestMutations:
    """Tests for insert, update, delete and bulk replace."""

    def test_insert_persists(self, document_store):
        document_store.insert("clients", {"id": "1", "name": "Acme"})

        on_disk = json.loads(document_store.path.read_text())
        assert on_disk["clients"] == [{"id": "1", "name": "Acme"}]
        assert set(on_disk) == {"clients", "invoices", "costs", "costGrids"}

    def test_update_shallow_merges(self, document_store):
        document_store.insert("clients", {"id": "1", "name": "Acme", "phone": "01"})

        merged = document_store.update("clients", "1", {"name": "Acme SA"})

        assert merged == {"id": "1", "name": "Acme SA", "phone": "01"}
        assert document_store.list_items("clients") == [merged]

    def test_update_missing_returns_none(self, document_store):
        assert document_store.update("clients", "nope", {"name": "X"}) is None

    def test_update_applies_derive(self, document_store):
        document_store.insert("invoices", {"id": "1", "amountHT": 100, "tva": 20})

        merged = document_store.update(
            "invoices", "1", {"tva": 40}, derive=lambda item: {**item, "amountTTC": 140}
        )

        assert merged["amountTTC"] == 140

    def test_delete(self, document_store):
        document_store.insert("costs", {"id": "1"})
        document_store.insert("costs", {"id": "2"})

        assert document_store.delete("costs", "1") is True
        assert document_store.delete("costs", "1") is False
        assert document_store.list_items("costs") == [{"id": "2"}]

    def test_replace_all(self, document_store):
        document_store.insert("clients", {"id": "old"})

        document = document_store.replace_all(
            {"clients": [{"id": "new"}], "costGrids": "garbage"}
        )

        assert document["clients"] == [{"id": "new"}]
        assert document["costGrids"] == []
        assert document_store.read() == document

    def test_no_temp_files_left(self, document_store):
        document_store.insert("clients", {"id": "1"})

        leftovers = [p.name for p in document_store.path.parent.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []
