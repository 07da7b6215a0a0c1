from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_TOTAL_KEYS = (
    "count",
    "totalSteps",
    "totalPower",
    "totalVoltage",
    "totalCurrent",
    "avgPower",
    "avgVoltage",
    "avgCurrent",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Dict[str, Any]) -> None:
    echo_heading("Reading")
    echo_key_values(
        (key, reading.get(key))
        for key in ("id", "timestamp", "steps", "power_mW", "voltage_V", "current_mA")
    )


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"Readings ({len(readings)})")
    if not readings:
        typer.echo("No readings stored.")
        return
    for reading in readings:
        typer.echo(
            f"  - {reading.get('timestamp')}: steps={reading.get('steps')} "
            f"power={reading.get('power_mW')}mW voltage={reading.get('voltage_V')}V "
            f"current={reading.get('current_mA')}mA"
        )


def render_totals(totals: Dict[str, Any]) -> None:
    echo_heading("Totals")
    echo_key_values((key, totals.get(key)) for key in _TOTAL_KEYS)


def render_daily(days: List[Dict[str, Any]]) -> None:
    echo_heading("Daily breakdown")
    if not days:
        typer.echo("No readings stored.")
        return
    for day in days:
        typer.echo(
            f"  - {day.get('date')}: count={day.get('count')} steps={day.get('totalSteps')} "
            f"avgPower={day.get('avgPower')} avgVoltage={day.get('avgVoltage')} "
            f"avgCurrent={day.get('avgCurrent')}"
        )
