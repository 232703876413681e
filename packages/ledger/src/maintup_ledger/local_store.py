"""Client-side persisted snapshot of the ledger document.

Plays the part of browser local storage: a JSON file holding one entry per
storage key, the ledger entry being the four collections plus ``unsynced``.
"""

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from maintup_ledger.models import LocalSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_STORAGE_KEY = "maintup-data"


class LocalSnapshotStore:
    """Read and write the client's snapshot under a storage key."""

    def __init__(self, path: str | Path, key: str = DEFAULT_STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    def _read_entries(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            entries = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("local_store_unreadable", path=str(self.path), error=str(e))
            return {}
        return entries if isinstance(entries, dict) else {}

    def load(self) -> LocalSnapshot | None:
        """Return the last saved snapshot, or None when there is none usable."""
        raw = self._read_entries().get(self.key)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            logger.warning("local_snapshot_invalid", path=str(self.path), errors=1)
            return None
        try:
            # Rows are validated one by one so a bad row never drops offline work
            return LocalSnapshot.from_rows(raw, unsynced=raw.get("unsynced", False))
        except ValidationError as e:
            logger.warning(
                "local_snapshot_invalid",
                path=str(self.path),
                errors=e.error_count(),
            )
            return None

    def save(self, snapshot: LocalSnapshot) -> None:
        entries = self._read_entries()
        entries[self.key] = snapshot.to_wire()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8"
        )

    def clear(self) -> None:
        entries = self._read_entries()
        if entries.pop(self.key, None) is not None:
            self.path.write_text(
                json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8"
            )
