"""Unit tests for the device control registry."""

from __future__ import annotations

import itertools

import pytest

from datastore.device_registry import DeviceControlRegistry, as_number
from services.errors import DeviceNotFoundError


class TickingClock:
    def __init__(self, start: int = 1_000) -> None:
        self._ticks = itertools.count(start)

    def __call__(self) -> int:
        return next(self._ticks)


@pytest.fixture()
def registry() -> DeviceControlRegistry:
    return DeviceControlRegistry(clock=TickingClock())


def test_get_or_create_inserts_defaults(registry: DeviceControlRegistry) -> None:
    assert not registry.contains("d1")

    control = registry.get_or_create("d1")

    assert registry.contains("d1")
    assert control.led == "off"
    assert control.buzzer == "off"
    assert control.servo == "enabled"
    assert control.servo_angle == 90
    assert control.last_updated == 1_000


def test_get_or_create_returns_existing_state(registry: DeviceControlRegistry) -> None:
    registry.apply_partial("d1", {"led": "on"})

    assert registry.get_or_create("d1").led == "on"
    assert len(registry) == 1


def test_returned_state_is_a_copy(registry: DeviceControlRegistry) -> None:
    control = registry.get_or_create("d1")
    control.led = "on"

    assert registry.get_or_create("d1").led == "off"


def test_apply_partial_overwrites_valid_fields(registry: DeviceControlRegistry) -> None:
    control = registry.apply_partial(
        "d1", {"led": "on", "buzzer": "beep", "servo": "disabled", "servo_angle": 45}
    )

    assert control.led == "on"
    assert control.buzzer == "beep"
    assert control.servo == "disabled"
    assert control.servo_angle == 45


def test_apply_partial_ignores_invalid_fields_but_stamps_time(
    registry: DeviceControlRegistry,
) -> None:
    before = registry.apply_partial("d1", {"servo_angle": 30})

    after = registry.apply_partial(
        "d1", {"servo_angle": 999, "led": "blink", "buzzer": ["on"], "servo": "enable"}
    )

    assert after.servo_angle == 30
    assert after.led == "off"
    assert after.buzzer == "off"
    assert after.servo == "enabled"
    assert after.last_updated > before.last_updated


def test_apply_action_requires_existing_device(registry: DeviceControlRegistry) -> None:
    with pytest.raises(DeviceNotFoundError) as excinfo:
        registry.apply_action("unknown-device", "led", "on")

    assert "unknown-device" in str(excinfo.value)
    assert len(registry) == 0


@pytest.mark.parametrize(
    ("action", "value", "field", "expected"),
    [
        ("led", "on", "led", "on"),
        ("buzzer", "beep", "buzzer", "beep"),
        ("servo", "disable", "servo", "disabled"),
        ("servo", "enable", "servo", "enabled"),
        ("servoAngle", 120, "servo_angle", 120),
        ("servoAngle", "15", "servo_angle", 15),
    ],
)
def test_apply_action_dispatches(
    registry: DeviceControlRegistry, action, value, field, expected
) -> None:
    registry.get_or_create("d1")

    control = registry.apply_action("d1", action, value)

    assert getattr(control, field) == expected


@pytest.mark.parametrize(
    ("action", "value"),
    [
        ("led", "dim"),
        ("servo", "enabled"),
        ("servoAngle", 181),
        ("servoAngle", "wide"),
        ("laser", "on"),
    ],
)
def test_apply_action_noop_still_stamps_time(
    registry: DeviceControlRegistry, action, value
) -> None:
    before = registry.get_or_create("d1")

    after = registry.apply_action("d1", action, value)

    assert after.model_dump(exclude={"last_updated"}) == before.model_dump(
        exclude={"last_updated"}
    )
    assert after.last_updated > before.last_updated


def test_apply_raw_stores_unchecked_values(registry: DeviceControlRegistry) -> None:
    control = registry.apply_raw("d1", {"led": "blink", "servo_angle": 999})

    assert control.led == "blink"
    assert control.servo_angle == 999
    assert control.buzzer == "off"


def test_snapshot_is_point_in_time_copy(registry: DeviceControlRegistry) -> None:
    registry.apply_partial("d1", {"led": "on"})
    registry.apply_partial("d2", {"buzzer": "on"})

    snapshot = registry.snapshot()
    registry.apply_partial("d1", {"led": "off"})

    assert list(snapshot) == ["d1", "d2"]
    assert snapshot["d1"].led == "on"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3, 3.0),
        (2.5, 2.5),
        (" 7.5 ", 7.5),
        ("x", None),
        (None, None),
        (True, None),
        (float("inf"), None),
        ("nan", None),
        ({"a": 1}, None),
        (10**400, None),
        (-(10**400), None),
    ],
)
def test_as_number(value, expected) -> None:
    assert as_number(value) == expected
