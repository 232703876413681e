"""File-backed JSON document store used by the HTTP API.

The whole document ``{clients, invoices, costs, costGrids}`` lives in one
file. Every mutation is a full read-modify-write followed by a whole-file
overwrite. Items are stored as received; nothing here validates entities.
"""

import json
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from maintup_ledger.models import COLLECTIONS

logger = structlog.get_logger(__name__)

Document = dict[str, list[dict[str, Any]]]


class StoreCorruptedError(Exception):
    """The persisted document could not be parsed."""

    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


def empty_document() -> Document:
    return {collection: [] for collection in COLLECTIONS}


class JsonDocumentStore:
    """Single JSON document holding every collection."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        # Serializes read-modify-write cycles within this process only
        self._lock = threading.RLock()

    def read(self) -> Document:
        """Load the whole document. A missing file is an empty document."""
        if not self.path.exists():
            return empty_document()
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return empty_document()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreCorruptedError(f"Invalid JSON in {self.path}: {e}", self.path) from e
        if not isinstance(data, dict):
            raise StoreCorruptedError(f"{self.path} must hold a JSON object", self.path)

        document = empty_document()
        for collection in COLLECTIONS:
            items = data.get(collection, [])
            if not isinstance(items, list):
                raise StoreCorruptedError(
                    f"Collection {collection!r} in {self.path} is not an array", self.path
                )
            document[collection] = items
        return document

    def write(self, document: Document) -> None:
        """Overwrite the whole file with ``document``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            tmp_path = Path(tmp_name)
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def list_items(self, collection: str) -> list[dict[str, Any]]:
        return self.read()[collection]

    def insert(self, collection: str, item: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            document = self.read()
            document[collection].append(item)
            self.write(document)
        logger.debug("item_inserted", collection=collection, id=item.get("id"))
        return item

    def update(
        self,
        collection: str,
        item_id: str,
        changes: dict[str, Any],
        derive: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
    ) -> dict[str, Any] | None:
        """Shallow-merge ``changes`` into the item with ``item_id``.

        ``derive`` may recompute fields of the merged item before it is
        written. Returns the merged item, or None when no item has that id.
        """
        with self._lock:
            document = self.read()
            items = document[collection]
            for index, item in enumerate(items):
                if item.get("id") == item_id:
                    merged = {**item, **changes}
                    if derive is not None:
                        merged = derive(merged)
                    items[index] = merged
                    self.write(document)
                    return merged
        return None

    def delete(self, collection: str, item_id: str) -> bool:
        """Remove the item with ``item_id``. Returns whether anything was removed."""
        with self._lock:
            document = self.read()
            items = document[collection]
            remaining = [item for item in items if item.get("id") != item_id]
            document[collection] = remaining
            self.write(document)
        return len(remaining) != len(items)

    def replace_all(self, data: dict[str, Any]) -> Document:
        """Replace every collection; absent collections become empty."""
        document = empty_document()
        for collection in COLLECTIONS:
            items = data.get(collection)
            document[collection] = list(items) if isinstance(items, list) else []
        with self._lock:
            self.write(document)
        logger.info(
            "document_replaced",
            **{collection: len(document[collection]) for collection in COLLECTIONS},
        )
        return document
