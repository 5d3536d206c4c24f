"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.schemas import (
    ActionRequest,
    ControlChangeResponse,
    ControlsResponse,
    ControlUpdateRequest,
    DevicesResponse,
    ErrorResponse,
    IngestResponse,
    ReadingsResponse,
    SensorsResponse,
    SensorSummary,
)
from services.errors import DeviceNotFoundError, ValidationError
from services.telemetry import TelemetryService, build_default_service

router = APIRouter()


def get_service() -> TelemetryService:
    return build_default_service()


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(by_alias=True),
    )


@router.post(
    "/api/ultrasonic",
    response_model=IngestResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
    summary="Receive a telemetry reading pushed by a device.",
)
async def ingest_reading(
    payload: Any = Body(..., description="Reading payload sent by the device."),
    service: TelemetryService = Depends(get_service),
) -> Any:
    try:
        record = service.ingestor.ingest(payload)
    except ValidationError as exc:
        return _failure(status.HTTP_400_BAD_REQUEST, exc.message)
    return IngestResponse(record=record)


@router.get(
    "/api/readings",
    response_model=ReadingsResponse,
    summary="Fetch the most recent readings in arrival order.",
)
async def list_readings(
    n: Optional[str] = Query(None, description="Number of readings (1-1000, default 200)."),
    service: TelemetryService = Depends(get_service),
) -> ReadingsResponse:
    readings = service.store.latest(n)
    return ReadingsResponse(count=len(readings), readings=readings)


@router.get(
    "/api/sensors",
    response_model=SensorsResponse,
    summary="Reading count and last reading per sensor.",
)
async def list_sensors(
    service: TelemetryService = Depends(get_service),
) -> SensorsResponse:
    summary = service.store.summary_by_sensor()
    sensors = {
        sensor_id: SensorSummary(count=entry["count"], last=entry["last"])
        for sensor_id, entry in summary.items()
    }
    return SensorsResponse(sensors=sensors)


@router.get(
    "/api/devices",
    response_model=DevicesResponse,
    summary="Control state of every known device.",
)
async def list_devices(
    service: TelemetryService = Depends(get_service),
) -> DevicesResponse:
    with service.lock:
        devices = service.registry.snapshot()
        readings_count = len(service.store)
    return DevicesResponse(devices=devices, readings_count=readings_count)


@router.get(
    "/api/devices/{device_id}/controls",
    response_model=ControlsResponse,
    summary="Read a device's control state, creating the default on first use.",
)
async def get_device_controls(
    device_id: str,
    service: TelemetryService = Depends(get_service),
) -> ControlsResponse:
    controls = service.controller.get_controls(device_id)
    return ControlsResponse(sensor_id=device_id, controls=controls)


@router.post(
    "/api/devices/{device_id}/controls",
    response_model=ControlChangeResponse,
    summary="Apply a partial control update; invalid fields are ignored.",
)
async def update_device_controls(
    device_id: str,
    request: ControlUpdateRequest,
    service: TelemetryService = Depends(get_service),
) -> ControlChangeResponse:
    fields = request.model_dump(by_alias=True, exclude_unset=True)
    controls = service.controller.set_controls(device_id, fields)
    return ControlChangeResponse(message="Controls updated", controls=controls)


@router.post(
    "/api/devices/{device_id}/action",
    response_model=ControlChangeResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Apply a named control action to a known device.",
)
async def perform_device_action(
    device_id: str,
    request: ActionRequest,
    service: TelemetryService = Depends(get_service),
) -> Any:
    try:
        controls = service.controller.perform_action(device_id, request.action, request.value)
    except DeviceNotFoundError as exc:
        return _failure(status.HTTP_404_NOT_FOUND, exc.message)
    return ControlChangeResponse(
        message=f"Action {request.action!r} applied", controls=controls
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Welcome message.",
    response_class=PlainTextResponse,
)
async def root() -> str:
    return "Welcome to backend of the IOT client server"
