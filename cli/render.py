from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_READING_KEYS = (
    "sensorId",
    "distance",
    "temperature",
    "humidity",
    "gas",
    "ledState",
    "buzzerState",
    "servoEnabled",
    "servoAngle",
    "timestamp",
    "status",
)

_CONTROL_KEYS = ("led", "buzzer", "servo", "servoAngle", "lastUpdated")


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Dict[str, Any]) -> None:
    echo_key_values((key, reading.get(key)) for key in _READING_KEYS)


def render_controls(sensor_id: str, controls: Dict[str, Any]) -> None:
    echo_heading(f"Controls for {sensor_id}")
    echo_key_values((key, controls.get(key)) for key in _CONTROL_KEYS)


def render_readings(payload: Dict[str, Any]) -> None:
    readings = payload.get("readings") or []
    echo_heading(f"Readings ({payload.get('count', len(readings))})")
    if not readings:
        typer.echo("No readings stored.")
        return
    for reading in readings:
        typer.echo(
            f"  - {reading.get('timestamp')} {reading.get('sensorId')}: "
            f"distance={reading.get('distance')} status={reading.get('status')}"
        )


def render_sensors(payload: Dict[str, Any]) -> None:
    sensors = payload.get("sensors") or {}
    echo_heading("Sensors")
    if not sensors:
        typer.echo("No sensors reported yet.")
        return
    for sensor_id, entry in sensors.items():
        last = entry.get("last") or {}
        typer.echo(
            f"  - {sensor_id}: count={entry.get('count')} "
            f"last_distance={last.get('distance')} last_seen={last.get('timestamp')}"
        )


def render_devices(payload: Dict[str, Any]) -> None:
    devices = payload.get("devices") or {}
    echo_heading("Devices")
    typer.echo(f"readingsCount: {payload.get('readingsCount')}")
    if not devices:
        typer.echo("No devices registered.")
        return
    for sensor_id, controls in devices.items():
        typer.echo(
            f"  - {sensor_id}: led={controls.get('led')} buzzer={controls.get('buzzer')} "
            f"servo={controls.get('servo')} servoAngle={controls.get('servoAngle')}"
        )
