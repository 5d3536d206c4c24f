"""Error types raised by the telemetry processors."""

from __future__ import annotations


class ValidationError(ValueError):
    """A payload is missing required input or carries malformed values."""

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else "invalid payload"


class DeviceNotFoundError(KeyError):
    """A control action referenced a device that has no control entry yet."""

    def __init__(self, device_id: str) -> None:
        super().__init__(device_id)
        self.device_id = device_id

    @property
    def message(self) -> str:
        return f"Device {self.device_id!r} not found."

    def __str__(self) -> str:
        return self.message
