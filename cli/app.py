from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_controls,
    render_devices,
    render_reading,
    render_readings,
    render_sensors,
)
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the telemetry hub.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Hub API base URL (defaults to API_BASE_URL env or http://localhost:4000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to HOST env)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (defaults to PORT env)."),
    reload: bool = typer.Option(False, "--reload/--no-reload", help="Reload on code changes."),
) -> None:
    """Run the hub server with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


@app.command("send")
def send_command(
    ctx: typer.Context,
    distance: float = typer.Option(..., "--distance", "-d", help="Measured distance."),
    sensor_id: Optional[str] = typer.Option(None, "--sensor-id", "-s", help="Device identifier."),
    temperature: Optional[float] = typer.Option(None, "--temperature"),
    humidity: Optional[float] = typer.Option(None, "--humidity"),
    gas: Optional[float] = typer.Option(None, "--gas"),
    led_state: Optional[str] = typer.Option(None, "--led-state"),
    buzzer_state: Optional[str] = typer.Option(None, "--buzzer-state"),
    servo_enabled: Optional[bool] = typer.Option(None, "--servo-enabled/--servo-disabled"),
    servo_angle: Optional[float] = typer.Option(None, "--servo-angle"),
    status: Optional[str] = typer.Option(None, "--status"),
) -> None:
    """Push a single reading, as a device would."""
    state = _get_state(ctx)
    candidates: Dict[str, Any] = {
        "sensorId": sensor_id,
        "distance": distance,
        "temperature": temperature,
        "humidity": humidity,
        "gas": gas,
        "ledState": led_state,
        "buzzerState": buzzer_state,
        "servoEnabled": servo_enabled,
        "servoAngle": servo_angle,
        "status": status,
    }
    payload = {key: value for key, value in candidates.items() if value is not None}
    result = state.client.send_reading(payload)
    typer.secho("Reading accepted.", fg=typer.colors.GREEN)
    render_reading(result.get("record") or {})


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    n: Optional[int] = typer.Option(None, "--count", "-n", help="Number of readings (1-1000)."),
) -> None:
    """List the most recent readings."""
    state = _get_state(ctx)
    render_readings(state.client.get_readings(n))


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """Summarize readings per sensor."""
    state = _get_state(ctx)
    render_sensors(state.client.get_sensors())


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List the control state of every known device."""
    state = _get_state(ctx)
    render_devices(state.client.get_devices())


@app.command("controls")
def controls_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
) -> None:
    """Show a device's control state."""
    state = _get_state(ctx)
    payload = state.client.get_controls(device_id)
    render_controls(payload.get("sensorId", device_id), payload.get("controls") or {})


@app.command("set")
def set_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    led: Optional[str] = typer.Option(None, "--led", help="on or off."),
    buzzer: Optional[str] = typer.Option(None, "--buzzer", help="on, off or beep."),
    servo: Optional[str] = typer.Option(None, "--servo", help="enabled or disabled."),
    servo_angle: Optional[float] = typer.Option(None, "--servo-angle", help="0 to 180."),
) -> None:
    """Update a device's controls. Invalid values are ignored by the hub."""
    state = _get_state(ctx)
    candidates = {"led": led, "buzzer": buzzer, "servo": servo, "servoAngle": servo_angle}
    fields = {key: value for key, value in candidates.items() if value is not None}
    payload = state.client.set_controls(device_id, fields)
    typer.secho(payload.get("message", "Controls updated"), fg=typer.colors.GREEN)
    render_controls(device_id, payload.get("controls") or {})


@app.command("action")
def action_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    action: str = typer.Argument(..., help="led, buzzer, servo or servoAngle."),
    value: str = typer.Argument(..., help="Value for the action, e.g. on, beep, enable, 45."),
) -> None:
    """Apply a named action to a known device."""
    state = _get_state(ctx)
    payload = state.client.perform_action(device_id, action, value)
    typer.secho(payload.get("message", "Action applied"), fg=typer.colors.GREEN)
    render_controls(device_id, payload.get("controls") or {})
