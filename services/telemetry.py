"""Wiring of the telemetry store, control registry and processors."""

from __future__ import annotations

from functools import lru_cache
from threading import RLock
from typing import Optional

from datastore.device_registry import Clock, DeviceControlRegistry, epoch_millis
from services.broadcast import BroadcastGateway
from services.control import ControlProcessor
from services.ingest import IngestProcessor
from settings import get_settings
from storage.reading_store import ReadingStore


class TelemetryService:
    """Owns one reading store and control registry plus everything that mutates them.

    All components share a single re-entrant lock, so an ingest (append,
    control write and broadcast) is seen by readers as one step.
    """

    def __init__(
        self,
        max_readings: int = 5000,
        snapshot_size: int = 200,
        clock: Clock = epoch_millis,
    ) -> None:
        self.lock = RLock()
        self.store = ReadingStore(capacity=max_readings, lock=self.lock)
        self.registry = DeviceControlRegistry(clock=clock, lock=self.lock)
        self.gateway = BroadcastGateway(
            store=self.store,
            registry=self.registry,
            lock=self.lock,
            snapshot_size=snapshot_size,
        )
        self.ingestor = IngestProcessor(
            store=self.store,
            controls=self.registry,
            gateway=self.gateway,
            lock=self.lock,
            clock=clock,
        )
        self.controller = ControlProcessor(
            registry=self.registry, gateway=self.gateway, lock=self.lock
        )

    def shutdown(self) -> None:
        """Release observer bookkeeping during application shutdown."""
        self.gateway.close()


@lru_cache
def build_default_service(max_readings: Optional[int] = None) -> TelemetryService:
    """Factory that wires the service from environment settings."""
    settings = get_settings()
    capacity = max_readings or settings.max_readings
    return TelemetryService(max_readings=capacity, snapshot_size=settings.snapshot_size)
