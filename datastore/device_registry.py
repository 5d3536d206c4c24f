"""In-memory registry of per-device control state.

Two write contracts exist side by side:

* ``ValidatedControlWriter`` backs the public control API. Every field is
  checked against its allowed values and rejected fields are ignored.
* ``TrustedControlWriter`` backs device ingest and the live socket
  channel. Supplied fields are stored as-is.

Both stamp ``last_updated`` on every call, including calls that end up
changing nothing.
"""

from __future__ import annotations

import logging
import math
import time
from threading import RLock
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from models.records import (
    BUZZER_STATES,
    CONTROL_FIELDS,
    LED_STATES,
    SERVO_ANGLE_RANGE,
    SERVO_STATES,
    DeviceControl,
)
from services.errors import DeviceNotFoundError

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

SERVO_ACTIONS = {"enable": "enabled", "disable": "disabled"}


def epoch_millis() -> int:
    return int(time.time() * 1000)


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _valid_angle(value: Any) -> Optional[float]:
    number = as_number(value)
    if number is None:
        return None
    low, high = SERVO_ANGLE_RANGE
    return number if low <= number <= high else None


def _member(value: Any, allowed: frozenset) -> bool:
    return isinstance(value, str) and value in allowed


def _check_field(name: str, value: Any) -> tuple[bool, Any]:
    if name == "led":
        return _member(value, LED_STATES), value
    if name == "buzzer":
        return _member(value, BUZZER_STATES), value
    if name == "servo":
        return _member(value, SERVO_STATES), value
    if name == "servo_angle":
        angle = _valid_angle(value)
        return angle is not None, angle
    return False, value


class ValidatedControlWriter(Protocol):
    def apply_partial(self, device_id: str, fields: Mapping[str, Any]) -> DeviceControl:
        ...

    def apply_action(self, device_id: str, action: str, value: Any) -> DeviceControl:
        ...


class TrustedControlWriter(Protocol):
    def apply_raw(self, device_id: str, fields: Mapping[str, Any]) -> DeviceControl:
        ...


class DeviceControlRegistry:

    def __init__(self, clock: Clock = epoch_millis, lock: Optional[RLock] = None) -> None:
        self._controls: Dict[str, DeviceControl] = {}
        self._clock = clock
        self._lock = lock if lock is not None else RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._controls)

    def contains(self, device_id: str) -> bool:
        with self._lock:
            return device_id in self._controls

    def get_or_create(self, device_id: str) -> DeviceControl:
        with self._lock:
            return self._ensure(device_id).model_copy(deep=True)

    def snapshot(self) -> Dict[str, DeviceControl]:
        """Return deep copies of every device's control state."""

        with self._lock:
            return {
                device_id: control.model_copy(deep=True)
                for device_id, control in self._controls.items()
            }

    def apply_partial(self, device_id: str, fields: Mapping[str, Any]) -> DeviceControl:
        with self._lock:
            control = self._ensure(device_id)
            for name in CONTROL_FIELDS:
                if name not in fields:
                    continue
                valid, value = _check_field(name, fields[name])
                if valid:
                    setattr(control, name, value)
                else:
                    logger.debug(
                        "Ignoring invalid control value",
                        extra={"sensor_id": device_id, "reason": f"{name}={fields[name]!r}"},
                    )
            control.last_updated = self._clock()
            return control.model_copy(deep=True)

    def apply_action(self, device_id: str, action: str, value: Any) -> DeviceControl:
        with self._lock:
            control = self._controls.get(device_id)
            if control is None:
                raise DeviceNotFoundError(device_id)

            if action == "led" and _member(value, LED_STATES):
                control.led = value
            elif action == "buzzer" and _member(value, BUZZER_STATES):
                control.buzzer = value
            elif action == "servo" and isinstance(value, str) and value in SERVO_ACTIONS:
                control.servo = SERVO_ACTIONS[value]
            elif action == "servoAngle" and _valid_angle(value) is not None:
                control.servo_angle = _valid_angle(value)
            else:
                logger.debug(
                    "Ignoring unsupported control action",
                    extra={"sensor_id": device_id, "action": action, "reason": repr(value)},
                )
            control.last_updated = self._clock()
            return control.model_copy(deep=True)

    def apply_raw(self, device_id: str, fields: Mapping[str, Any]) -> DeviceControl:
        with self._lock:
            control = self._ensure(device_id)
            for name in CONTROL_FIELDS:
                if name in fields:
                    setattr(control, name, fields[name])
            control.last_updated = self._clock()
            return control.model_copy(deep=True)

    def _ensure(self, device_id: str) -> DeviceControl:
        control = self._controls.get(device_id)
        if control is None:
            control = DeviceControl(last_updated=self._clock())
            self._controls[device_id] = control
            logger.info("Registered device", extra={"sensor_id": device_id})
        return control
