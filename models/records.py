"""Domain models shared across services."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LED_STATES = frozenset({"on", "off"})
BUZZER_STATES = frozenset({"on", "off", "beep"})
SERVO_STATES = frozenset({"enabled", "disabled"})
SERVO_ANGLE_RANGE = (0.0, 180.0)

CONTROL_FIELDS = ("led", "buzzer", "servo", "servo_angle")


class Reading(BaseModel):
    """One timestamped telemetry sample pushed by a device."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    sensor_id: str = "unknown"
    distance: float
    temperature: float = 0.0
    humidity: float = 0.0
    gas: float = 0.0
    led_state: str = "off"
    buzzer_state: str = "off"
    servo_enabled: bool = False
    servo_angle: float = 90.0
    timestamp: int
    status: str = "OK"
    meta: Dict[str, Any] = Field(default_factory=dict)


class DeviceControl(BaseModel):
    """Latest desired actuator configuration for a device.

    Fields are untyped: values written through the trusted control
    channel are stored unchecked and may fall outside the allowed sets.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    led: Any = "off"
    buzzer: Any = "off"
    servo: Any = "enabled"
    servo_angle: Any = 90
    last_updated: int = 0
