"""Unit tests for the aggregation logic."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone

from models.records import StoredReading
from services.aggregator import Aggregator


def _reading(
    steps: int,
    power: float,
    voltage: float,
    current: float,
    timestamp: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
) -> StoredReading:
    """Helper to build deterministic stored readings."""

    return StoredReading(
        id=f"r-{steps}-{timestamp.isoformat()}",
        steps=steps,
        power_mw=power,
        voltage_v=voltage,
        current_ma=current,
        timestamp=timestamp,
    )


def test_totals_of_empty_input_are_zero() -> None:
    summary = Aggregator().totals([])

    assert summary.count == 0
    assert summary.total_steps == 0
    assert summary.total_power == 0.0
    for value in (summary.avg_power, summary.avg_voltage, summary.avg_current):
        assert value == 0.0
        assert not math.isnan(value)


def test_totals_compute_sums_and_means() -> None:
    summary = Aggregator().totals(
        [
            _reading(10, 5, 3, 2),
            _reading(20, 15, 9, 6),
        ]
    )

    assert summary.count == 2
    assert summary.total_steps == 30
    assert summary.total_power == 20
    assert summary.total_voltage == 12
    assert summary.total_current == 8
    assert summary.avg_power == 10
    assert summary.avg_voltage == 6
    assert summary.avg_current == 4


def test_daily_breakdown_groups_by_utc_date() -> None:
    readings = [
        _reading(5, 1, 1, 1, datetime(2024, 1, 2, 23, 59, tzinfo=timezone.utc)),
        _reading(1, 2, 2, 2, datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)),
        _reading(3, 4, 4, 4, datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)),
    ]

    days = Aggregator().daily_breakdown(readings)

    assert [day.day for day in days] == [date(2024, 1, 1), date(2024, 1, 2)]
    first, second = days
    assert first.summary.count == 2
    assert first.summary.total_steps == 4
    assert first.summary.avg_power == 3
    assert second.summary.count == 1
    assert second.summary.total_steps == 5


def test_daily_breakdown_of_empty_input_is_empty() -> None:
    assert Aggregator().daily_breakdown([]) == []


def test_means_stay_finite_when_sums_overflow() -> None:
    summary = Aggregator().totals(
        [
            _reading(1, 1e308, 2.0, 1e308),
            _reading(2, 1e308, 4.0, 1e308),
            _reading(3, 1e308, 6.0, 1e308),
        ]
    )

    assert math.isinf(summary.total_power)
    assert math.isinf(summary.total_current)
    assert summary.avg_power == 1e308
    assert summary.avg_current == 1e308
    assert summary.avg_voltage == 4.0
