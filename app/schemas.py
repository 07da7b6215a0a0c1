"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.records import StoredReading
from services.aggregator import AggregationSummary, DailySummary

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Envelope shared by every JSON route: ``data`` on success, else ``message``."""

    success: bool = True
    data: Optional[DataT] = None
    message: Optional[str] = None


class ReadingOut(BaseModel):
    """A stored reading as exposed on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    steps: int = Field(..., ge=0)
    power_mw: float = Field(..., alias="power_mW")
    voltage_v: float = Field(..., alias="voltage_V")
    current_ma: float = Field(..., alias="current_mA")
    timestamp: datetime

    @classmethod
    def from_record(cls, reading: StoredReading) -> "ReadingOut":
        return cls(
            id=reading.id,
            steps=reading.steps,
            power_mw=reading.power_mw,
            voltage_v=reading.voltage_v,
            current_ma=reading.current_ma,
            timestamp=reading.timestamp,
        )


def reading_payload(reading: StoredReading) -> Dict[str, Any]:
    """JSON-ready dict for the real-time channel."""
    return ReadingOut.from_record(reading).model_dump(mode="json", by_alias=True)


class AggregateSnapshot(BaseModel):
    """Totals and means over the retained readings, keyed in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    count: int = Field(0, ge=0)
    total_steps: int = 0
    total_power: float = 0.0
    total_voltage: float = 0.0
    total_current: float = 0.0
    avg_power: float = 0.0
    avg_voltage: float = 0.0
    avg_current: float = 0.0

    @classmethod
    def from_summary(cls, summary: AggregationSummary) -> "AggregateSnapshot":
        return cls(
            count=summary.count,
            total_steps=summary.total_steps,
            total_power=summary.total_power,
            total_voltage=summary.total_voltage,
            total_current=summary.total_current,
            avg_power=summary.avg_power,
            avg_voltage=summary.avg_voltage,
            avg_current=summary.avg_current,
        )


class DailyAggregate(AggregateSnapshot):
    day: str = Field(..., alias="date", description="UTC calendar date, YYYY-MM-DD.")

    @classmethod
    def from_daily(cls, daily: DailySummary) -> "DailyAggregate":
        snapshot = AggregateSnapshot.from_summary(daily.summary)
        return cls(day=daily.day.isoformat(), **snapshot.model_dump())


class PurgeResult(BaseModel):
    deleted: int = Field(..., ge=0)


ReadingList = List[ReadingOut]
DailyList = List[DailyAggregate]
