from __future__ import annotations

from typing import Any, Dict, List, Optional

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

    def send_reading(self, reading: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/data", json=reading)

    def list_readings(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/data") or []

    def get_totals(self) -> Dict[str, Any]:
        return self._request("GET", "/api/totals") or {}

    def get_daily(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/daily") or []

    def delete_all(self, key: str) -> Dict[str, Any]:
        return self._request("DELETE", "/api/delete-all", params={"key": key}) or {}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc

        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("success"):
            raise typer.BadParameter("Unexpected response payload from the service.")
        return payload.get("data")

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Optional[str] = None
        try:
            data = exc.response.json()
            detail = data.get("message")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
