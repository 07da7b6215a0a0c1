"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as fixed-width ISO-8601 UTC with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        # the offset pushes the instant outside the datetime range
        raise ValueError("Invalid timestamp format") from exc


@dataclass(frozen=True, slots=True)
class Reading:
    """One validated telemetry sample from the device."""

    steps: int
    power_mw: float
    voltage_v: float
    current_ma: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class StoredReading:
    """A reading that has been assigned an identifier by a store backend."""

    id: str
    steps: int
    power_mw: float
    voltage_v: float
    current_ma: float
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading_id: str, reading: Reading) -> "StoredReading":
        return cls(
            id=reading_id,
            steps=reading.steps,
            power_mw=reading.power_mw,
            voltage_v=reading.voltage_v,
            current_ma=reading.current_ma,
            timestamp=reading.timestamp,
        )

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "StoredReading":
        """Rebuild a record from its persisted form.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` on malformed input.
        """
        raw_timestamp = document["timestamp"]
        if not isinstance(raw_timestamp, str):
            raise TypeError("timestamp must be an ISO-8601 string")
        return cls(
            id=str(document["id"]),
            steps=int(document["steps"]),
            power_mw=float(document["power_mW"]),
            voltage_v=float(document["voltage_V"]),
            current_ma=float(document["current_mA"]),
            timestamp=parse_timestamp(raw_timestamp),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "steps": self.steps,
            "power_mW": self.power_mw,
            "voltage_V": self.voltage_v,
            "current_mA": self.current_ma,
            "timestamp": format_timestamp(self.timestamp),
        }

    def restamped(self, timestamp: datetime) -> "StoredReading":
        return replace(self, timestamp=timestamp)
