"""Control-change requests against the device registry."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, Mapping, Optional

from datastore.device_registry import (
    SERVO_ACTIONS,
    DeviceControlRegistry,
    TrustedControlWriter,
    ValidatedControlWriter,
)
from models.records import DeviceControl
from services.broadcast import CONTROL_UPDATE, BroadcastGateway, control_payload

logger = logging.getLogger(__name__)

# Wire keys accepted from clients, mapped onto control field names.
_FIELD_KEYS = {
    "led": "led",
    "buzzer": "buzzer",
    "servo": "servo",
    "servoAngle": "servo_angle",
}


def control_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a client payload into registry field names."""
    fields = {
        name: payload[key] for key, name in _FIELD_KEYS.items() if key in payload
    }
    if "buzzer" not in fields and "buzzerAction" in payload:
        fields["buzzer"] = payload["buzzerAction"]
    return fields


class ControlProcessor:

    def __init__(
        self,
        registry: DeviceControlRegistry,
        gateway: BroadcastGateway,
        lock: Optional[RLock] = None,
    ) -> None:
        self.registry = registry
        self.validated: ValidatedControlWriter = registry
        self.trusted: TrustedControlWriter = registry
        self.gateway = gateway
        self._lock = lock if lock is not None else RLock()

    def get_controls(self, device_id: str) -> DeviceControl:
        return self.registry.get_or_create(device_id)

    def set_controls(self, device_id: str, payload: Mapping[str, Any]) -> DeviceControl:
        """Apply the valid fields of ``payload``; invalid ones are dropped."""
        with self._lock:
            self.registry.get_or_create(device_id)
            control = self.validated.apply_partial(device_id, control_fields(payload))
            self._announce(device_id, control)
        return control

    def perform_action(self, device_id: str, action: str, value: Any) -> DeviceControl:
        """Apply a named action.

        Raises ``DeviceNotFoundError`` for unknown devices, leaving the
        registry untouched and broadcasting nothing.
        """
        with self._lock:
            control = self.validated.apply_action(device_id, action, value)
            self._announce(device_id, control)
        return control

    def live_update(self, device_id: Any, command: Any, value: Any) -> Optional[DeviceControl]:
        """Apply an unchecked command from the live channel.

        Commands for unknown devices and unknown commands are dropped
        without touching the registry.
        """
        field = _FIELD_KEYS.get(command) if isinstance(command, str) else None
        if field is None:
            logger.debug(
                "Dropping unknown live command",
                extra={"sensor_id": device_id, "command": command},
            )
            return None
        if field == "servo" and isinstance(value, str):
            value = SERVO_ACTIONS.get(value, value)

        with self._lock:
            if not isinstance(device_id, str) or not self.registry.contains(device_id):
                logger.debug(
                    "Dropping live command for unknown device",
                    extra={"sensor_id": device_id, "command": command},
                )
                return None
            control = self.trusted.apply_raw(device_id, {field: value})
            self._announce(device_id, control)
        return control

    def _announce(self, device_id: str, control: DeviceControl) -> None:
        self.gateway.publish(CONTROL_UPDATE, control_payload(device_id, control))
