from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"Sensor Readings ({len(readings)})")
    if not readings:
        typer.echo("No readings stored.")
        return
    typer.echo(f"{'data_hora':<19}  {'temperatura':>11}  {'umidade':>8}  {'lux':>8}")
    for reading in readings:
        typer.echo(
            f"{reading.get('data_hora', ''):<19}  "
            f"{reading.get('temperatura', ''):>11}  "
            f"{reading.get('umidade', ''):>8}  "
            f"{reading.get('lux', ''):>8}"
        )


def render_access(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Access")
    if "nome" not in payload:
        typer.echo(payload.get("mensagem", "No access recorded."))
        return
    echo_key_values(
        [
            ("nome", payload.get("nome")),
            ("uid", payload.get("uid")),
            ("status", payload.get("status")),
            ("data_hora", payload.get("data_hora")),
            ("foto", payload.get("foto")),
        ]
    )
