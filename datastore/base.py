"""Storage contract shared by every reading backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List
from uuid import uuid4

from models.records import Reading, StoredReading


class StoreError(RuntimeError):
    """Base class for storage failures."""


class StoreUnavailable(StoreError):
    """The backing engine or file could not be reached or written."""


class StoreCorrupt(StoreError):
    """Persisted data exists but cannot be decoded."""


def new_reading_id() -> str:
    return uuid4().hex


def sort_readings(readings: Iterable[StoredReading]) -> List[StoredReading]:
    # sorted() is stable: equal timestamps keep insertion order.
    return sorted(readings, key=lambda reading: reading.timestamp)


class ReadingStore(ABC):
    """Durable, ordered sequence of readings.

    Implementations must make ``append`` durable before returning and must
    serialize appends with respect to any capacity check.
    """

    backend: str = "abstract"

    @abstractmethod
    def append(self, reading: Reading) -> StoredReading:
        """Persist ``reading`` and return it with its generated identifier."""

    @abstractmethod
    def list_all(self) -> List[StoredReading]:
        """Return every retained reading, ascending by timestamp."""

    @abstractmethod
    def delete_all(self) -> int:
        """Remove every reading and return how many were removed."""

    def close(self) -> None:
        """Release backend resources."""
