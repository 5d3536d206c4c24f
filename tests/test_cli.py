from __future__ import annotations

from typing import Any, Dict, List

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config

_CONTROLS = {
    "led": "on",
    "buzzer": "off",
    "servo": "enabled",
    "servoAngle": 90,
    "lastUpdated": 1700000000000,
}


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.sent: List[Dict[str, Any]] = []
        self.control_calls: List[tuple[str, Dict[str, Any]]] = []
        self.actions: List[tuple[str, str, Any]] = []
        self.readings_requested: List[int | None] = []
        self.closed = False

    def send_reading(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.sent.append(payload)
        record = {"sensorId": "unknown", "status": "OK", "timestamp": 1}
        record.update(payload)
        return {"ok": True, "record": record}

    def get_readings(self, n: int | None = None) -> Dict[str, Any]:
        self.readings_requested.append(n)
        return {
            "ok": True,
            "count": 1,
            "readings": [{"sensorId": "esp-01", "distance": 12.5, "timestamp": 5, "status": "OK"}],
        }

    def get_sensors(self) -> Dict[str, Any]:
        return {"ok": True, "sensors": {"esp-01": {"count": 3, "last": {"distance": 1.0, "timestamp": 9}}}}

    def get_devices(self) -> Dict[str, Any]:
        return {"ok": True, "devices": {"esp-01": _CONTROLS}, "readingsCount": 3}

    def get_controls(self, device_id: str) -> Dict[str, Any]:
        return {"ok": True, "sensorId": device_id, "controls": _CONTROLS}

    def set_controls(self, device_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self.control_calls.append((device_id, fields))
        return {"ok": True, "message": "Controls updated", "controls": _CONTROLS}

    def perform_action(self, device_id: str, action: str, value: Any) -> Dict[str, Any]:
        self.actions.append((device_id, action, value))
        return {"ok": True, "message": f"Action {action!r} applied", "controls": _CONTROLS}

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_send_only_includes_supplied_fields(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["send", "--distance", "23.5", "--sensor-id", "esp-01", "--servo-enabled"])

    assert result.exit_code == 0
    assert "Reading accepted" in result.stdout
    assert stub.sent == [{"sensorId": "esp-01", "distance": 23.5, "servoEnabled": True}]
    assert "sensorId: esp-01" in result.stdout
    assert stub.closed is True


def test_readings_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["readings", "-n", "10"])

    assert result.exit_code == 0
    assert stub.readings_requested == [10]
    assert "Readings (1)" in result.stdout
    assert "esp-01" in result.stdout


def test_sensors_and_devices_commands(runner: CliRunner, stub: StubClient) -> None:
    sensors = runner.invoke(app, ["sensors"])
    devices = runner.invoke(app, ["devices"])

    assert sensors.exit_code == 0
    assert "esp-01: count=3" in sensors.stdout
    assert devices.exit_code == 0
    assert "readingsCount: 3" in devices.stdout
    assert "led=on" in devices.stdout


def test_set_command_sends_wire_keys(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["set", "d1", "--led", "on", "--servo-angle", "45"])

    assert result.exit_code == 0
    assert stub.control_calls == [("d1", {"led": "on", "servoAngle": 45.0})]
    assert "Controls for d1" in result.stdout


def test_action_and_controls_commands(runner: CliRunner, stub: StubClient) -> None:
    action = runner.invoke(app, ["action", "d1", "servo", "disable"])
    controls = runner.invoke(app, ["controls", "d1"])

    assert action.exit_code == 0
    assert stub.actions == [("d1", "servo", "disable")]
    assert "Action 'servo' applied" in action.stdout
    assert controls.exit_code == 0
    assert "led: on" in controls.stdout


def test_base_url_option_reaches_client(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://hub:9000/", "devices"])

    assert result.exit_code == 0
    assert stub.config.base_url == "http://hub:9000"


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://example:4000/")
    monkeypatch.setenv("CLI_HTTP_TIMEOUT", "not-a-number")

    config = load_config()

    assert config.base_url == "http://example:4000"
    assert config.timeout == 30.0


def test_api_client_reports_error_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"ok": False, "message": "Device 'x' not found."})

    client = ApiClient(CLIConfig(base_url="http://hub"))
    client._client = httpx.Client(base_url="http://hub", transport=httpx.MockTransport(handler))

    with pytest.raises(typer.Exit) as excinfo:
        client.perform_action("x", "led", "on")

    assert excinfo.value.exit_code == 1
    client.close()
