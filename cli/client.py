from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry hub."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_reading(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/ultrasonic", json=payload)

    def get_readings(self, n: Optional[int] = None) -> Dict[str, Any]:
        params = {"n": n} if n is not None else None
        return self._request("GET", "/api/readings", params=params)

    def get_sensors(self) -> Dict[str, Any]:
        return self._request("GET", "/api/sensors")

    def get_devices(self) -> Dict[str, Any]:
        return self._request("GET", "/api/devices")

    def get_controls(self, device_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/devices/{device_id}/controls")

    def set_controls(self, device_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/api/devices/{device_id}/controls", json=fields)

    def perform_action(self, device_id: str, action: str, value: Any) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/api/devices/{device_id}/action",
            json={"action": action, "value": value},
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
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
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("message") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
