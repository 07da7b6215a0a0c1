"""Aggregation logic for telemetry readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timezone
from typing import Dict, Iterable, List

from models.records import StoredReading


def _running_mean(mean: float, value: float, count: int) -> float:
    # (mean - mean / n) + value / n never exceeds max(|mean|, |value|)
    return mean - mean / count + value / count


@dataclass
class AggregationSummary:
    """Sums and means over a set of readings. Empty input yields zeros.

    Means are updated incrementally so they stay finite even when a float sum
    overflows to ``inf``.
    """

    count: int = 0
    total_steps: int = 0
    total_power: float = 0.0
    total_voltage: float = 0.0
    total_current: float = 0.0
    avg_power: float = 0.0
    avg_voltage: float = 0.0
    avg_current: float = 0.0

    def add(self, reading: StoredReading) -> None:
        self.count += 1
        self.total_steps += reading.steps
        self.total_power += reading.power_mw
        self.total_voltage += reading.voltage_v
        self.total_current += reading.current_ma
        self.avg_power = _running_mean(self.avg_power, reading.power_mw, self.count)
        self.avg_voltage = _running_mean(self.avg_voltage, reading.voltage_v, self.count)
        self.avg_current = _running_mean(self.avg_current, reading.current_ma, self.count)


@dataclass
class DailySummary:
    day: date
    summary: AggregationSummary


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Every call walks the full input; nothing is cached between calls.
    """

    def totals(self, readings: Iterable[StoredReading]) -> AggregationSummary:
        summary = AggregationSummary()
        for reading in readings:
            summary.add(reading)
        return summary

    def daily_breakdown(self, readings: Iterable[StoredReading]) -> List[DailySummary]:
        buckets: Dict[date, AggregationSummary] = {}
        for reading in readings:
            day = reading.timestamp.astimezone(timezone.utc).date()
            buckets.setdefault(day, AggregationSummary()).add(reading)

        return [
            DailySummary(day=day, summary=buckets[day])
            for day in sorted(buckets)
        ]
