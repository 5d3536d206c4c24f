"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.records import DeviceControl, Reading


class ApiModel(BaseModel):
    """Base for payloads exchanged in camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(ApiModel):
    ok: bool = False
    message: str


class IngestResponse(ApiModel):
    """Response payload after a reading has been stored."""

    ok: bool = True
    record: Reading


class ReadingsResponse(ApiModel):
    ok: bool = True
    count: int = Field(..., ge=0)
    readings: List[Reading]


class SensorSummary(ApiModel):
    count: int = Field(..., ge=1)
    last: Reading


class SensorsResponse(ApiModel):
    ok: bool = True
    sensors: Dict[str, SensorSummary]


class DevicesResponse(ApiModel):
    ok: bool = True
    devices: Dict[str, DeviceControl]
    readings_count: int = Field(..., ge=0)


class ControlsResponse(ApiModel):
    ok: bool = True
    sensor_id: str
    controls: DeviceControl


class ControlChangeResponse(ApiModel):
    ok: bool = True
    message: str
    controls: DeviceControl


class ControlUpdateRequest(ApiModel):
    """Partial control update. Values are checked by the registry, not here."""

    led: Optional[Any] = None
    buzzer: Optional[Any] = None
    buzzer_action: Optional[Any] = None
    servo: Optional[Any] = None
    servo_angle: Optional[Any] = None


class ActionRequest(ApiModel):
    action: str
    value: Any = None
