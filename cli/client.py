from __future__ import annotations

from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def push_reading(self, temperature: float, humidity: float, lux: float) -> str:
        payload = {"temperatura": temperature, "umidade": humidity, "lux": lux}
        try:
            response = self._client.post("/salvar-sensor", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return str(response.json().get("mensagem", ""))

    def push_access(self, name: str, uid: str, status: str, photo: str) -> str:
        payload = {"nome": name, "uid": uid, "status": status, "foto": photo}
        try:
            response = self._client.post("/registrar-acesso", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return str(response.json().get("mensagem", ""))

    def get_readings(self) -> List[Dict[str, Any]]:
        try:
            response = self._client.get("/api/dados")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        if not isinstance(payload, list):
            raise typer.BadParameter("Unexpected response payload when listing readings.")
        return payload

    def get_latest_access(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/ultimo-acesso")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("erro") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
