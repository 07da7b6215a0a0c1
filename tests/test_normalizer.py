from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from services.normalizer import ReadingRejected, RejectionReason, normalize

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _payload(**overrides):
    payload = {"steps": 10, "power": 5.5, "voltage": 3.3, "current": 2}
    payload.update(overrides)
    return payload


def test_short_wire_names_map_to_canonical_fields() -> None:
    reading = normalize(_payload(), now=lambda: FIXED_NOW)

    assert reading.steps == 10
    assert reading.power_mw == 5.5
    assert reading.voltage_v == 3.3
    assert reading.current_ma == 2.0
    assert reading.timestamp == FIXED_NOW


def test_suffixed_names_are_accepted() -> None:
    reading = normalize(
        {"steps": 1, "power_mW": 2, "voltage_V": 3, "current_mA": 4},
        now=lambda: FIXED_NOW,
    )

    assert (reading.power_mw, reading.voltage_v, reading.current_ma) == (2.0, 3.0, 4.0)


def test_numeric_strings_are_coerced() -> None:
    reading = normalize(_payload(steps="42", power=" 1.25 "))

    assert reading.steps == 42
    assert reading.power_mw == 1.25


@pytest.mark.parametrize("field", ["steps", "power", "voltage", "current"])
def test_missing_field_is_reported(field: str) -> None:
    payload = _payload()
    del payload[field]

    with pytest.raises(ReadingRejected) as excinfo:
        normalize(payload)

    assert excinfo.value.reason is RejectionReason.missing_field
    assert excinfo.value.field in {"steps", "power_mW", "voltage_V", "current_mA"}
    assert excinfo.value.field.startswith(field)


def test_null_counts_as_missing() -> None:
    with pytest.raises(ReadingRejected) as excinfo:
        normalize(_payload(voltage=None))

    assert excinfo.value.reason is RejectionReason.missing_field
    assert excinfo.value.field == "voltage_V"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"power": "abc"}, "power_mW"),
        ({"voltage": float("nan")}, "voltage_V"),
        ({"current": float("inf")}, "current_mA"),
        ({"current": "Infinity"}, "current_mA"),
        ({"power": True}, "power_mW"),
        ({"power": ""}, "power_mW"),
        ({"steps": -1}, "steps"),
        ({"steps": 2.5}, "steps"),
        ({"voltage": [1]}, "voltage_V"),
        ({"steps": 10**400}, "steps"),
        ({"power": 10**400}, "power_mW"),
    ],
)
def test_invalid_numeric_values_are_rejected(overrides, field: str) -> None:
    with pytest.raises(ReadingRejected) as excinfo:
        normalize(_payload(**overrides))

    assert excinfo.value.reason is RejectionReason.invalid_numeric_field
    assert excinfo.value.field == field
    assert field in str(excinfo.value)


def test_timestamp_string_is_parsed_as_utc() -> None:
    reading = normalize(_payload(timestamp="2024-01-02T03:04:05+02:00"))

    assert reading.timestamp == datetime(2024, 1, 2, 1, 4, 5, tzinfo=timezone.utc)


def test_naive_timestamp_is_treated_as_utc() -> None:
    reading = normalize(_payload(timestamp="2024-01-02T03:04:05"))

    assert reading.timestamp.tzinfo is timezone.utc
    assert reading.timestamp.hour == 3


def test_epoch_milliseconds_timestamp() -> None:
    reading = normalize(_payload(timestamp=1704067200000))

    assert reading.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    [
        "yesterday",
        "2024-13-01T00:00:00Z",
        {"at": 1},
        "9999-12-31T23:00:00-05:00",
        "0001-01-01T01:00:00+05:00",
    ],
)
def test_invalid_timestamp_is_rejected(value) -> None:
    with pytest.raises(ReadingRejected) as excinfo:
        normalize(_payload(timestamp=value))

    assert excinfo.value.reason is RejectionReason.invalid_timestamp


def test_aware_datetime_outside_utc_range_is_rejected() -> None:
    eastern = timezone(timedelta(hours=-5))

    with pytest.raises(ReadingRejected) as excinfo:
        normalize(_payload(timestamp=datetime(9999, 12, 31, 23, 0, tzinfo=eastern)))

    assert excinfo.value.reason is RejectionReason.invalid_timestamp


def test_non_mapping_payload_is_rejected() -> None:
    with pytest.raises(ReadingRejected) as excinfo:
        normalize(["steps", 1])

    assert excinfo.value.reason is RejectionReason.missing_field


def test_rejection_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        normalize({})
