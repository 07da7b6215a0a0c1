from __future__ import annotations

import json
import logging
import os
from collections import deque
from pathlib import Path
from threading import Lock
from typing import Deque, List, Optional

from datastore.base import (
    ReadingStore,
    StoreCorrupt,
    StoreUnavailable,
    new_reading_id,
    sort_readings,
)
from models.records import Reading, StoredReading

logger = logging.getLogger(__name__)


class JsonFileReadingStore(ReadingStore):
    """Bounded store persisted as one JSON array, rewritten on every change.

    Entries are kept in insertion order; once ``max_readings`` is exceeded the
    earliest inserted entry is evicted.
    """

    backend = "file"

    def __init__(self, persistence_path: Optional[Path] = None, max_readings: int = 1000) -> None:
        if max_readings <= 0:
            raise ValueError("max_readings must be positive.")
        self.persistence_path = persistence_path
        self.max_readings = max_readings
        self._items: Deque[StoredReading] = deque()
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                self._items.extend(self._load_from_disk())
            except StoreCorrupt:
                logger.warning(
                    "Persisted readings are unreadable; starting with empty history",
                    extra={"path": str(persistence_path), "backend": self.backend},
                    exc_info=True,
                )
            # Files written by a larger limit are trimmed on the next write.
            while len(self._items) > max_readings:
                self._items.popleft()

    def append(self, reading: Reading) -> StoredReading:
        stored = StoredReading.from_reading(new_reading_id(), reading)
        with self._lock:
            updated = list(self._items)
            updated.append(stored)
            if len(updated) > self.max_readings:
                updated = updated[-self.max_readings :]
            self._persist(updated)
            self._items = deque(updated)
        return stored

    def list_all(self) -> List[StoredReading]:
        with self._lock:
            snapshot = list(self._items)
        return sort_readings(snapshot)

    def delete_all(self) -> int:
        with self._lock:
            count = len(self._items)
            self._persist([])
            self._items.clear()
        return count

    def _persist(self, items: List[StoredReading]) -> None:
        if not self.persistence_path:
            return
        payload = json.dumps([item.to_document() for item in items], indent=2)
        tmp_path = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.persistence_path)
        except OSError as exc:
            raise StoreUnavailable(
                f"Could not write readings to {self.persistence_path}: {exc}"
            ) from exc

    def _load_from_disk(self) -> List[StoredReading]:
        if not self.persistence_path or not self.persistence_path.exists():
            return []

        try:
            raw = self.persistence_path.read_text(encoding="utf-8") or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreCorrupt(f"Could not read {self.persistence_path}: {exc}") from exc

        if not isinstance(data, list):
            raise StoreCorrupt(f"{self.persistence_path} does not hold a JSON array.")

        try:
            return [StoredReading.from_document(document) for document in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreCorrupt(f"Malformed reading in {self.persistence_path}: {exc}") from exc
