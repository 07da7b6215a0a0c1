"""Validation boundary turning untrusted device payloads into readings."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from numbers import Real
from typing import Any, Callable, Mapping, Optional

from models.records import Reading, parse_timestamp

# canonical field -> accepted keys, looked up in order
FIELD_ALIASES = {
    "steps": ("steps",),
    "power_mW": ("power", "power_mW"),
    "voltage_V": ("voltage", "voltage_V"),
    "current_mA": ("current", "current_mA"),
}

_MISSING = object()


class RejectionReason(str, Enum):
    missing_field = "missing_field"
    invalid_numeric_field = "invalid_numeric_field"
    invalid_timestamp = "invalid_timestamp"


class ReadingRejected(ValueError):
    """Raised when a payload cannot become a :class:`Reading`."""

    def __init__(self, reason: RejectionReason, field: Optional[str] = None) -> None:
        self.reason = reason
        self.field = field
        if reason is RejectionReason.missing_field:
            message = f"Missing field: {field}"
        elif reason is RejectionReason.invalid_numeric_field:
            message = f"Invalid numeric value for field: {field}"
        else:
            message = "Invalid timestamp"
        super().__init__(message)


def _lookup(raw: Mapping[str, Any], canonical: str) -> Any:
    for key in FIELD_ALIASES[canonical]:
        if key in raw and raw[key] is not None:
            return raw[key]
    return _MISSING


def _coerce_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ReadingRejected(RejectionReason.invalid_numeric_field, field)
    if isinstance(value, Real):
        try:
            number = float(value)
        except OverflowError:
            raise ReadingRejected(RejectionReason.invalid_numeric_field, field) from None
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            raise ReadingRejected(RejectionReason.invalid_numeric_field, field) from None
    else:
        raise ReadingRejected(RejectionReason.invalid_numeric_field, field)

    if not math.isfinite(number):
        raise ReadingRejected(RejectionReason.invalid_numeric_field, field)
    return number


def _coerce_steps(value: Any) -> int:
    number = _coerce_float(value, "steps")
    if number < 0 or not number.is_integer():
        raise ReadingRejected(RejectionReason.invalid_numeric_field, "steps")
    return int(number)


def _coerce_timestamp(value: Any, now: Callable[[], datetime]) -> datetime:
    if value is _MISSING:
        return now().astimezone(timezone.utc)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except OverflowError:
            raise ReadingRejected(RejectionReason.invalid_timestamp, "timestamp") from None
    if isinstance(value, str):
        try:
            return parse_timestamp(value)
        except ValueError:
            raise ReadingRejected(RejectionReason.invalid_timestamp, "timestamp") from None
    if isinstance(value, Real) and not isinstance(value, bool):
        # epoch milliseconds, as JavaScript clients send Date.now()
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ReadingRejected(RejectionReason.invalid_timestamp, "timestamp") from None
    raise ReadingRejected(RejectionReason.invalid_timestamp, "timestamp")


def normalize(
    raw: Any,
    now: Optional[Callable[[], datetime]] = None,
) -> Reading:
    """Validate ``raw`` and return a canonical :class:`Reading`.

    Numeric fields are checked in the order steps, power, voltage, current;
    the first failure wins. A missing key (or ``null``) is reported as
    ``missing_field``; a present but unusable value as
    ``invalid_numeric_field``. ``timestamp`` defaults to ``now()``.
    """
    if not isinstance(raw, Mapping):
        raise ReadingRejected(RejectionReason.missing_field, "steps")

    clock = now or (lambda: datetime.now(timezone.utc))
    values = {}
    for canonical in FIELD_ALIASES:
        value = _lookup(raw, canonical)
        if value is _MISSING:
            raise ReadingRejected(RejectionReason.missing_field, canonical)
        values[canonical] = value

    steps = _coerce_steps(values["steps"])
    power = _coerce_float(values["power_mW"], "power_mW")
    voltage = _coerce_float(values["voltage_V"], "voltage_V")
    current = _coerce_float(values["current_mA"], "current_mA")

    timestamp_raw = raw.get("timestamp", _MISSING)
    if timestamp_raw is None:
        timestamp_raw = _MISSING
    timestamp = _coerce_timestamp(timestamp_raw, clock)

    return Reading(
        steps=steps,
        power_mw=power,
        voltage_v=voltage,
        current_ma=current,
        timestamp=timestamp,
    )
