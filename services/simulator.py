"""Replays stored readings onto the hub for demos without a device."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from datastore.base import ReadingStore, StoreError
from services.hub import LiveHub

logger = logging.getLogger(__name__)


class ReplaySimulator:
    """Cycle through the store on a timer, re-stamping each reading with now.

    Replayed readings are broadcast only; they are never appended.
    """

    def __init__(
        self,
        store: ReadingStore,
        hub: LiveHub,
        interval_ms: int = 3000,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.hub = hub
        self.interval_ms = interval_ms
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._task: Optional[asyncio.Task[None]] = None
        self._index = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, interval_ms: Optional[int] = None) -> bool:
        """Start replaying. Returns ``False`` when there is nothing to replay."""
        if self.running:
            return True
        if interval_ms is not None:
            if interval_ms <= 0:
                raise ValueError("interval_ms must be positive.")
            self.interval_ms = interval_ms

        history = await asyncio.to_thread(self.store.list_all)
        if not history:
            logger.warning("Replay not started: no stored readings")
            return False

        self._index = 0
        self._task = asyncio.create_task(self._run())
        self._task.add_done_callback(self._log_exit)
        logger.info("Replay started", extra={"interval_ms": self.interval_ms})
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Replay stopped")

    async def tick(self) -> bool:
        """Emit the next reading; ``False`` when the store is currently empty."""
        history = await asyncio.to_thread(self.store.list_all)
        if not history:
            return False
        position = self._index % len(history)
        await self.hub.emit(history[position].restamped(self._clock()))
        self._index = (position + 1) % len(history)
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000.0)
            try:
                await self.tick()
            except StoreError:
                logger.exception("Replay tick could not read the store")

    @staticmethod
    def _log_exit(task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Replay stopped unexpectedly", exc_info=exc)
