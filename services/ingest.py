"""Normalization and ingest of device telemetry payloads."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Mapping, Optional

from datastore.device_registry import Clock, TrustedControlWriter, as_number, epoch_millis
from models.records import Reading
from services.broadcast import (
    DEVICE_UPDATE,
    READING,
    BroadcastGateway,
    control_payload,
    reading_payload,
)
from services.errors import ValidationError
from storage.reading_store import ReadingStore

logger = logging.getLogger(__name__)

_TRUTHY = {"true", "1", "yes", "on", "enabled"}


def _text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


def _number(value: Any, default: float) -> float:
    number = as_number(value)
    return default if number is None else number


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    number = as_number(value)
    return bool(number)


def normalize_reading(payload: Any, now: int) -> Reading:
    """Build a Reading from a raw device payload, applying field defaults."""
    if not isinstance(payload, Mapping):
        raise ValidationError("payload must be a JSON object")
    if payload.get("distance") is None:
        raise ValidationError("distance required")

    distance = as_number(payload["distance"])
    if distance is None:
        raise ValidationError("distance must be numeric")

    supplied_ts = as_number(payload.get("timestamp"))
    meta = payload.get("meta")

    return Reading(
        sensor_id=_text(payload.get("sensorId"), "unknown"),
        distance=distance,
        temperature=_number(payload.get("temperature"), 0.0),
        humidity=_number(payload.get("humidity"), 0.0),
        gas=_number(payload.get("gas"), 0.0),
        led_state=_text(payload.get("ledState"), "off"),
        buzzer_state=_text(payload.get("buzzerState"), "off"),
        servo_enabled=_flag(payload.get("servoEnabled")),
        servo_angle=_number(payload.get("servoAngle"), 90.0),
        timestamp=int(supplied_ts) if supplied_ts else now,
        status=_text(payload.get("status"), "OK"),
        meta=dict(meta) if isinstance(meta, Mapping) else {},
    )


class IngestProcessor:
    """Stores device readings and mirrors their actuator state into the registry."""

    def __init__(
        self,
        store: ReadingStore,
        controls: TrustedControlWriter,
        gateway: BroadcastGateway,
        lock: Optional[RLock] = None,
        clock: Clock = epoch_millis,
    ) -> None:
        self.store = store
        self.controls = controls
        self.gateway = gateway
        self._lock = lock if lock is not None else RLock()
        self._clock = clock

    def ingest(self, payload: Any) -> Reading:
        """Store a reading and mirror its actuator state.

        Raises ``ValidationError`` when the payload has no numeric distance;
        nothing is stored or broadcast in that case.
        """
        try:
            reading = normalize_reading(payload, now=self._clock())
        except ValidationError as exc:
            logger.warning("Rejected reading", extra={"reason": exc.message})
            raise

        derived = {
            "led": reading.led_state,
            "buzzer": reading.buzzer_state,
            "servo": "enabled" if reading.servo_enabled else "disabled",
            "servo_angle": reading.servo_angle,
        }
        with self._lock:
            self.store.append(reading)
            control = self.controls.apply_raw(reading.sensor_id, derived)
            self.gateway.publish(READING, reading_payload(reading))
            self.gateway.publish(DEVICE_UPDATE, control_payload(reading.sensor_id, control))

        logger.debug("Stored reading", extra={"sensor_id": reading.sensor_id})
        return reading
