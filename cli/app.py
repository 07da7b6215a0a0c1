from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_daily, render_reading, render_readings, render_totals


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:4000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    steps: int = typer.Option(..., "--steps", min=0, help="Step count."),
    power: float = typer.Option(..., "--power", help="Power in mW."),
    voltage: float = typer.Option(..., "--voltage", help="Voltage in V."),
    current: float = typer.Option(..., "--current", help="Current in mA."),
    timestamp: Optional[str] = typer.Option(
        None,
        "--timestamp",
        help="ISO-8601 instant; the server uses its own clock when omitted.",
    ),
) -> None:
    """Post one reading, as the device would."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {
        "steps": steps,
        "power": power,
        "voltage": voltage,
        "current": current,
    }
    if timestamp:
        payload["timestamp"] = timestamp
    stored = state.client.send_reading(payload)
    typer.secho("Reading stored.", fg=typer.colors.GREEN)
    render_reading(stored)


@app.command("readings")
def readings_command(ctx: typer.Context) -> None:
    """List stored readings, oldest first."""
    state = _get_state(ctx)
    render_readings(state.client.list_readings())


@app.command("totals")
def totals_command(ctx: typer.Context) -> None:
    """Show totals and averages over the stored readings."""
    state = _get_state(ctx)
    render_totals(state.client.get_totals())


@app.command("daily")
def daily_command(ctx: typer.Context) -> None:
    """Show the per-day breakdown."""
    state = _get_state(ctx)
    render_daily(state.client.get_daily())


@app.command("purge")
def purge_command(
    ctx: typer.Context,
    key: Optional[str] = typer.Option(
        None,
        "--key",
        help="Admin key (defaults to the ADMIN_KEY env).",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete every stored reading."""
    state = _get_state(ctx)
    admin_key = key or state.config.admin_key
    if not admin_key:
        raise typer.BadParameter("An admin key is required (--key or ADMIN_KEY).")
    if not yes:
        typer.confirm("Delete ALL stored readings?", abort=True)
    result = state.client.delete_all(admin_key)
    typer.secho(f"Deleted {result.get('deleted', 0)} readings.", fg=typer.colors.GREEN)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(4000, "--port", envvar="PORT", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    """Run the telemetry service with uvicorn."""
    uvicorn.run("app.main:app", host=host, port=port, reload=reload, log_config=None)
