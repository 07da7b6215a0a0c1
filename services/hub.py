"""Live fan-out of readings to connected observers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar
from uuid import uuid4

from datastore.base import StoreError
from models.records import StoredReading

logger = logging.getLogger(__name__)

INITIAL_DATA = "initial-data"
NEW_READING = "new-reading"

T = TypeVar("T")


@dataclass(frozen=True)
class HubMessage:
    event: str
    data: Any


class QueueObserver:
    """Observer with a bounded outbox drained by :meth:`pump`.

    ``offer`` never blocks; it returns ``False`` once the outbox is full or the
    observer has been closed.
    """

    def __init__(
        self,
        deliver: Callable[[HubMessage], Awaitable[None]],
        queue_size: int = 100,
        observer_id: Optional[str] = None,
    ) -> None:
        self.observer_id = observer_id or uuid4().hex[:12]
        self._deliver = deliver
        self._queue: asyncio.Queue[Optional[HubMessage]] = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def offer(self, message: HubMessage) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    async def pump(self) -> None:
        while not self.closed:
            message = await self._queue.get()
            if message is None:
                break
            await self._deliver(message)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Pending messages are abandoned; the sentinel wakes a waiting pump.
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)


class LiveHub:
    """Owns the observer set and the single emission path.

    One ``asyncio.Lock`` serializes snapshot-and-register against
    append-and-broadcast, so an observer sees each reading exactly once:
    either inside its ``initial-data`` snapshot or as a ``new-reading``.
    """

    def __init__(self, snapshot: Callable[[], List[StoredReading]]) -> None:
        self._snapshot = snapshot
        self._observers: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    async def connect(self, observer: Any) -> None:
        async with self._lock:
            try:
                history = await asyncio.to_thread(self._snapshot)
            except StoreError:
                logger.exception(
                    "Failed to load history for new observer",
                    extra={"observer_id": observer.observer_id},
                )
                history = []
            observer.offer(HubMessage(INITIAL_DATA, history))
            self._observers[observer.observer_id] = observer
        logger.info(
            "Observer connected",
            extra={"observer_id": observer.observer_id, "observer_count": self.observer_count},
        )

    def disconnect(self, observer: Any) -> None:
        if self._observers.pop(observer.observer_id, None) is None:
            return
        logger.info(
            "Observer disconnected",
            extra={"observer_id": observer.observer_id, "observer_count": self.observer_count},
        )

    async def publish(self, produce: Callable[[], StoredReading]) -> StoredReading:
        """Run ``produce`` (a store append) and broadcast its result atomically."""
        async with self._lock:
            stored = await asyncio.to_thread(produce)
            self._broadcast(stored)
        return stored

    async def emit(self, reading: StoredReading) -> None:
        """Broadcast without persisting anything."""
        async with self._lock:
            self._broadcast(reading)

    async def run_exclusive(self, operation: Callable[[], T]) -> T:
        async with self._lock:
            return await asyncio.to_thread(operation)

    def _broadcast(self, reading: StoredReading) -> None:
        message = HubMessage(NEW_READING, reading)
        for observer_id, observer in list(self._observers.items()):
            try:
                delivered = observer.offer(message)
            except Exception:  # noqa: BLE001 - one observer must not break the fan-out
                logger.exception("Observer raised during broadcast", extra={"observer_id": observer_id})
                delivered = False
            if delivered:
                continue
            self._observers.pop(observer_id, None)
            close = getattr(observer, "close", None)
            if close is not None:
                close()
            logger.warning(
                "Dropped observer that could not accept a reading",
                extra={"observer_id": observer_id, "reading_id": reading.id},
            )
