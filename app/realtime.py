"""WebSocket transport for broadcasts and the live control channel.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}``.
Server-to-client events come from the broadcast gateway; the only
client-to-server event is ``controlDevice`` carrying
``{"sensorId", "command", "value"}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api import get_service
from services.telemetry import TelemetryService
from settings import get_settings

logger = logging.getLogger(__name__)

CONTROL_DEVICE = "controlDevice"

router = APIRouter()


class QueueObserver:
    """Broadcast observer that buffers events for one socket connection."""

    def __init__(self, loop: asyncio.AbstractEventLoop, max_pending: int) -> None:
        self.observer_id = uuid4().hex
        self._loop = loop
        self._queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=max_pending)

    def deliver(self, event: str, payload: Any) -> None:
        message = {"event": event, "data": payload}
        self._loop.call_soon_threadsafe(self._enqueue, message)

    def _enqueue(self, message: Dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Dropping event for slow observer",
                extra={"observer_id": self.observer_id, "event": message["event"]},
            )

    async def pump(self, websocket: WebSocket) -> None:
        while True:
            message = await self._queue.get()
            await websocket.send_json(message)


def _frame_text(message: Dict[str, Any]) -> Optional[str]:
    """Text of an ASGI receive message; binary frames are decoded as UTF-8."""
    if message.get("text") is not None:
        return message["text"]
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Ignoring undecodable binary frame")
        return None


def _parse_frame(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return frame if isinstance(frame, dict) else None


def handle_frame(service: TelemetryService, frame: Optional[Dict[str, Any]]) -> None:
    if frame is None or frame.get("event") != CONTROL_DEVICE:
        logger.debug("Ignoring unsupported socket frame", extra={"reason": repr(frame)})
        return
    data = frame.get("data")
    if not isinstance(data, dict):
        logger.debug("Ignoring control frame without data")
        return
    service.controller.live_update(data.get("sensorId"), data.get("command"), data.get("value"))


@router.websocket("/ws")
async def telemetry_socket(
    websocket: WebSocket,
    service: TelemetryService = Depends(get_service),
) -> None:
    await websocket.accept()
    observer = QueueObserver(
        asyncio.get_running_loop(), get_settings().observer_queue_size
    )
    service.gateway.connect(observer)
    sender = asyncio.create_task(observer.pump(websocket))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            handle_frame(service, _parse_frame(_frame_text(message)))
    except WebSocketDisconnect:
        pass
    finally:
        service.gateway.disconnect(observer)
        sender.cancel()
        with suppress(asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
            await sender
