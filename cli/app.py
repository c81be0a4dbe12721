from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_access, render_readings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Report readings to and query the sensor telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to TELEMETRY_API_URL env or http://localhost:3001).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("push")
def push_command(
    ctx: typer.Context,
    temperature: float = typer.Option(..., "--temperature", "-t", help="Temperature reading."),
    humidity: float = typer.Option(..., "--humidity", "-u", help="Relative humidity reading."),
    lux: float = typer.Option(..., "--lux", "-l", help="Illuminance reading."),
) -> None:
    """Push one sensor reading, like the external reporter does."""
    state = _get_state(ctx)
    message = state.client.push_reading(temperature, humidity, lux)
    typer.secho(message or "Reading accepted.", fg=typer.colors.GREEN)


@app.command("access")
def access_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Badge holder name."),
    uid: str = typer.Argument(..., help="Badge UID."),
    status: str = typer.Argument(..., help="Access decision, e.g. liberado."),
    photo: str = typer.Argument(..., help="Photo reference."),
) -> None:
    """Submit a badge scan."""
    state = _get_state(ctx)
    message = state.client.push_access(name, uid, status, photo)
    typer.secho(message or "Access submitted.", fg=typer.colors.GREEN)


@app.command("readings")
def readings_command(ctx: typer.Context) -> None:
    """Show the most recent readings, oldest first."""
    state = _get_state(ctx)
    render_readings(state.client.get_readings())


@app.command("latest-access")
def latest_access_command(ctx: typer.Context) -> None:
    """Show the most recent badge scan."""
    state = _get_state(ctx)
    render_access(state.client.get_latest_access())
