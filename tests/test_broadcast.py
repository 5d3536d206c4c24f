"""Unit tests for the broadcast gateway."""

from __future__ import annotations

from typing import Any, List, Tuple

from datastore.device_registry import DeviceControlRegistry
from models.records import Reading
from services.broadcast import BroadcastGateway
from storage.reading_store import ReadingStore


class RecordingObserver:
    def __init__(self, observer_id: str) -> None:
        self.observer_id = observer_id
        self.events: List[Tuple[str, Any]] = []

    def deliver(self, event: str, payload: Any) -> None:
        self.events.append((event, payload))


class BrokenObserver(RecordingObserver):
    def deliver(self, event: str, payload: Any) -> None:
        raise RuntimeError("socket closed")


def _gateway(snapshot_size: int = 200) -> BroadcastGateway:
    store = ReadingStore(capacity=500)
    registry = DeviceControlRegistry(clock=lambda: 42)
    return BroadcastGateway(store=store, registry=registry, snapshot_size=snapshot_size)


def test_connect_sends_snapshot_then_devices_snapshot() -> None:
    gateway = _gateway(snapshot_size=2)
    for index in range(3):
        gateway.store.append(Reading(sensor_id="esp-01", distance=index, timestamp=index))
    gateway.registry.apply_raw("esp-01", {"led": "on"})
    observer = RecordingObserver("o1")

    gateway.connect(observer)

    assert [event for event, _ in observer.events] == ["snapshot", "devicesSnapshot"]
    snapshot = observer.events[0][1]
    assert [r["timestamp"] for r in snapshot] == [1, 2]
    assert snapshot[0]["sensorId"] == "esp-01"
    devices = observer.events[1][1]
    assert devices == {
        "esp-01": {
            "led": "on",
            "buzzer": "off",
            "servo": "enabled",
            "servoAngle": 90,
            "lastUpdated": 42,
        }
    }


def test_snapshot_is_not_a_live_reference() -> None:
    gateway = _gateway()
    gateway.registry.apply_raw("d1", {"led": "on"})
    observer = RecordingObserver("o1")
    gateway.connect(observer)

    gateway.registry.apply_raw("d1", {"led": "off"})

    assert observer.events[1][1]["d1"]["led"] == "on"


def test_publish_reaches_connected_observers_in_order() -> None:
    gateway = _gateway()
    first = RecordingObserver("o1")
    second = RecordingObserver("o2")
    gateway.connect(first)
    gateway.connect(second)

    gateway.publish("reading", {"n": 1})
    gateway.publish("deviceUpdate", {"n": 2})

    for observer in (first, second):
        assert observer.events[2:] == [("reading", {"n": 1}), ("deviceUpdate", {"n": 2})]
    assert gateway.observer_count == 2


def test_disconnected_observer_receives_nothing_further() -> None:
    gateway = _gateway()
    observer = RecordingObserver("o1")
    gateway.connect(observer)
    gateway.disconnect(observer)

    gateway.publish("reading", {})

    assert len(observer.events) == 2
    assert gateway.observer_count == 0


def test_no_replay_for_late_observers() -> None:
    gateway = _gateway()
    gateway.publish("reading", {"n": 1})
    observer = RecordingObserver("late")

    gateway.connect(observer)

    assert [event for event, _ in observer.events] == ["snapshot", "devicesSnapshot"]


def test_failing_observer_does_not_block_others() -> None:
    gateway = _gateway()
    healthy = RecordingObserver("ok")
    gateway.connect(BrokenObserver("broken"))
    gateway.connect(healthy)

    gateway.publish("controlUpdate", {"sensorId": "d1"})

    assert healthy.events[-1] == ("controlUpdate", {"sensorId": "d1"})


def test_close_drops_all_observers() -> None:
    gateway = _gateway()
    gateway.connect(RecordingObserver("o1"))

    gateway.close()

    assert gateway.observer_count == 0
