from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from threading import Lock
from typing import List, Union

from datastore.base import (
    ReadingStore,
    StoreCorrupt,
    StoreUnavailable,
    new_reading_id,
    sort_readings,
)
from models.records import Reading, StoredReading, format_timestamp

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS readings (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    timestamp TEXT NOT NULL,
    document TEXT NOT NULL
)
"""
_INDEX = "CREATE INDEX IF NOT EXISTS readings_by_time ON readings (timestamp, seq)"


class DocumentReadingStore(ReadingStore):
    """Unbounded store keeping one JSON document per row in SQLite.

    Every write runs in its own transaction, so a reading is durable once
    :meth:`append` returns. ``":memory:"`` gives a process-local database.
    """

    backend = "document"

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            with self._conn:
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute(_SCHEMA)
                self._conn.execute(_INDEX)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Could not open document store {self.path}: {exc}") from exc

    def append(self, reading: Reading) -> StoredReading:
        stored = StoredReading.from_reading(new_reading_id(), reading)
        document = stored.to_document()
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT INTO readings (id, timestamp, document) VALUES (?, ?, ?)",
                        (stored.id, format_timestamp(stored.timestamp), json.dumps(document)),
                    )
            except sqlite3.Error as exc:
                raise StoreUnavailable(f"Could not insert reading: {exc}") from exc
        return stored

    def list_all(self) -> List[StoredReading]:
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT document FROM readings ORDER BY timestamp, seq"
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreUnavailable(f"Could not read readings: {exc}") from exc

        try:
            readings = self._decode(rows)
        except StoreCorrupt:
            logger.warning(
                "Stored documents are unreadable; serving empty history",
                extra={"path": self.path, "backend": self.backend},
                exc_info=True,
            )
            return []
        return sort_readings(readings)

    def delete_all(self) -> int:
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute("DELETE FROM readings")
            except sqlite3.Error as exc:
                raise StoreUnavailable(f"Could not delete readings: {exc}") from exc
        return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _decode(rows: List[tuple]) -> List[StoredReading]:
        try:
            return [StoredReading.from_document(json.loads(row[0])) for row in rows]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise StoreCorrupt(f"Malformed reading document: {exc}") from exc
