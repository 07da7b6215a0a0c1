"""Orchestration of ingestion, history, aggregation and admin purge."""

from __future__ import annotations

import hmac
import logging
from functools import lru_cache
from typing import Any, List, Optional

from datastore.base import ReadingStore
from datastore.factory import build_default_store
from models.records import StoredReading
from services.aggregator import AggregationSummary, Aggregator, DailySummary
from services.hub import LiveHub
from services.normalizer import normalize
from services.simulator import ReplaySimulator
from settings import get_settings

logger = logging.getLogger(__name__)


class UnauthorizedError(PermissionError):
    """The supplied admin key does not match the configured secret."""


class TelemetryService:
    """Coordinates the store, the live hub and the aggregator."""

    def __init__(
        self,
        store: ReadingStore,
        aggregator: Aggregator,
        admin_key: Optional[str] = None,
        replay_interval_ms: int = 3000,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.hub = LiveHub(snapshot=store.list_all)
        self.simulator = ReplaySimulator(store, self.hub, interval_ms=replay_interval_ms)
        self._admin_key = admin_key

    async def ingest(self, payload: Any) -> StoredReading:
        """Validate, persist and broadcast one reading.

        Raises ``ReadingRejected`` before touching the store and ``StoreError``
        when persisting fails; broadcasting itself never raises.
        """
        reading = normalize(payload)
        stored = await self.hub.publish(lambda: self.store.append(reading))
        logger.debug("Reading stored", extra={"reading_id": stored.id})
        return stored

    def list_readings(self) -> List[StoredReading]:
        return self.store.list_all()

    def totals(self) -> AggregationSummary:
        return self.aggregator.totals(self.store.list_all())

    def daily_breakdown(self) -> List[DailySummary]:
        return self.aggregator.daily_breakdown(self.store.list_all())

    async def purge(self, key: Optional[str]) -> int:
        if not self._admin_key or key is None or not hmac.compare_digest(
            key.encode("utf-8"), self._admin_key.encode("utf-8")
        ):
            raise UnauthorizedError("Unauthorized")
        deleted = await self.hub.run_exclusive(self.store.delete_all)
        logger.info("Deleted all readings", extra={"deleted": deleted, "backend": self.store.backend})
        return deleted

    async def shutdown(self) -> None:
        await self.simulator.stop()
        self.store.close()


@lru_cache
def build_default_service() -> TelemetryService:
    """Factory that wires the service with the configured backend."""
    settings = get_settings()
    return TelemetryService(
        store=build_default_store(),
        aggregator=Aggregator(),
        admin_key=settings.admin_key,
        replay_interval_ms=settings.replay_interval_ms,
    )
