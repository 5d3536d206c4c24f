"""Publish/subscribe fan-out of telemetry events to connected observers.

Delivery is best-effort and at-most-once: an event reaches the observers
connected when it is published, in publish order, and is never replayed
for observers that connect later.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol

from datastore.device_registry import DeviceControlRegistry
from models.records import DeviceControl, Reading
from storage.reading_store import ReadingStore

logger = logging.getLogger(__name__)

READING = "reading"
DEVICE_UPDATE = "deviceUpdate"
CONTROL_UPDATE = "controlUpdate"
SNAPSHOT = "snapshot"
DEVICES_SNAPSHOT = "devicesSnapshot"


class Observer(Protocol):
    observer_id: str

    def deliver(self, event: str, payload: Any) -> None:
        """Hand an event to the observer without blocking."""
        ...


def reading_payload(reading: Reading) -> Dict[str, Any]:
    return reading.model_dump(mode="json", by_alias=True)


def control_payload(device_id: str, control: DeviceControl) -> Dict[str, Any]:
    return {
        "sensorId": device_id,
        "controls": control.model_dump(mode="json", by_alias=True),
    }


class BroadcastGateway:

    def __init__(
        self,
        store: ReadingStore,
        registry: DeviceControlRegistry,
        lock: Optional[RLock] = None,
        snapshot_size: int = 200,
    ) -> None:
        self.store = store
        self.registry = registry
        self.snapshot_size = snapshot_size
        self._lock = lock if lock is not None else RLock()
        self._observers: Dict[str, Observer] = {}

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def connect(self, observer: Observer) -> None:
        """Send the connection snapshots, then start delivering live events."""
        with self._lock:
            readings = [reading_payload(r) for r in self.store.latest(self.snapshot_size)]
            devices = {
                device_id: control.model_dump(mode="json", by_alias=True)
                for device_id, control in self.registry.snapshot().items()
            }
            self._send(observer, SNAPSHOT, readings)
            self._send(observer, DEVICES_SNAPSHOT, devices)
            self._observers[observer.observer_id] = observer
        logger.info("Observer connected", extra={"observer_id": observer.observer_id})

    def disconnect(self, observer: Observer) -> None:
        with self._lock:
            removed = self._observers.pop(observer.observer_id, None)
        if removed is not None:
            logger.info("Observer disconnected", extra={"observer_id": observer.observer_id})

    def publish(self, event: str, payload: Any) -> None:
        with self._lock:
            observers: List[Observer] = list(self._observers.values())
            for observer in observers:
                self._send(observer, event, payload)

    def close(self) -> None:
        with self._lock:
            self._observers.clear()

    @staticmethod
    def _send(observer: Observer, event: str, payload: Any) -> None:
        try:
            observer.deliver(event, payload)
        except Exception:  # noqa: BLE001 - best effort delivery
            logger.exception(
                "Failed to deliver event",
                extra={"observer_id": observer.observer_id, "event": event},
            )
