"""
Unit tests for the motion/tilt classifier.

Tests cover:
    - Initial state and the status wire record
    - Tilt and movement classification, including missing samples/axes
    - Edge-triggered notification with cross-suppression
    - Observer registration, ordering and failure isolation
"""

import json

import pytest

from sxm.sensing.device import Device, DeviceStatus, MovementState, TiltState
from sxm.sensing.samples import Acceleration, RotationRate


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

STILL_ACCEL = Acceleration(0.0, 0.0, 0.0)
STILL_ROTATION = RotationRate(0.0, 0.0, 0.0)
SHAKE_ACCEL = Acceleration(2.0, 0.0, 0.0)


def settle(device: Device) -> None:
    """Bring a fresh device to (horizontal, stationary) without notifications."""
    device.on_motion(STILL_ACCEL, STILL_ROTATION)
    device.on_orientation(0.0, 0.0, 0.0)
    device.update()


@pytest.fixture
def device():
    return Device("dev-1")


@pytest.fixture
def events(device):
    recorded = []
    device.register_on_motion_changed(lambda: recorded.append(device.status))
    return recorded


# ===========================================================================
# State and status
# ===========================================================================

@pytest.mark.unit
class TestDeviceStatus:
    def test_initial_state_is_moving_and_tilted(self, device):
        assert device.is_moving
        assert device.is_tilted
        assert device.status == DeviceStatus("dev-1", MovementState.MOVING, TiltState.TILTED)
        assert not device.joined

    def test_status_wire_format(self):
        status = DeviceStatus("abc", MovementState.STATIONARY, TiltState.HORIZONTAL)
        assert status.to_dict() == {
            "device_id": "abc",
            "device_movement": "stationary",
            "device_tilt": "horizontal",
        }
        assert json.loads(status.to_json()) == status.to_dict()

    def test_status_json_reflects_latest_update(self, device):
        settle(device)
        assert json.loads(device.status_json) == {
            "device_id": "dev-1",
            "device_movement": "stationary",
            "device_tilt": "horizontal",
        }

    def test_mark_joined(self, device):
        device.mark_joined()
        assert device.joined


# ===========================================================================
# Classification
# ===========================================================================

@pytest.mark.unit
class TestClassification:
    def test_tilt_uses_beta_and_gamma(self, device):
        device.on_orientation(0.0, 0.0, -6.0)
        device.update()
        assert device.is_tilted

        device.on_orientation(None, 5.0, 0.0)
        device.update()
        assert not device.is_tilted

    def test_alpha_does_not_tilt(self, device):
        device.on_orientation(90.0, 0.0, 0.0)
        device.update()
        assert not device.is_tilted

    def test_partial_orientation_keeps_other_angles(self, device):
        device.on_orientation(10.0, 20.0, 30.0)
        device.on_orientation(beta=1.0)
        assert device.orientation == (10.0, 1.0, 30.0)

    def test_acceleration_above_threshold_is_moving(self, device):
        device.on_motion(Acceleration(0.0, -1.5, 0.0), STILL_ROTATION)
        device.update()
        assert device.is_moving

    def test_rotation_above_threshold_is_moving(self, device):
        device.on_motion(STILL_ACCEL, RotationRate(0.0, 0.0, 2.5))
        device.update()
        assert device.is_moving

    def test_values_at_threshold_are_not_moving(self, device):
        device.on_motion(Acceleration(1.0, 1.0, 1.0), RotationRate(2.0, 2.0, 2.0))
        device.update()
        assert not device.is_moving

    def test_missing_rotation_sample_is_not_moving(self, device):
        device.on_motion(Acceleration(50.0, 0.0, 0.0), None)
        device.update()
        assert not device.is_moving

    def test_separate_samples_combine(self, device):
        device.on_rotation_rate(STILL_ROTATION)
        device.on_acceleration(SHAKE_ACCEL)
        device.update()
        assert device.is_moving

        device.on_acceleration(STILL_ACCEL)
        device.update()
        assert not device.is_moving

    def test_missing_axes_count_as_zero(self, device):
        device.on_motion(Acceleration(x=None, y=3.0, z=None), RotationRate())
        device.update()
        assert device.is_moving

    def test_custom_thresholds(self):
        device = Device("d", tilt_threshold=45.0, acceleration_threshold=5.0, rotation_threshold=10.0)
        device.on_motion(Acceleration(4.0, 0.0, 0.0), RotationRate(9.0, 0.0, 0.0))
        device.on_orientation(0.0, 30.0, 0.0)
        device.update()
        assert not device.is_moving
        assert not device.is_tilted


# ===========================================================================
# Notifications
# ===========================================================================

@pytest.mark.unit
class TestNotifications:
    def test_tilted_without_acceleration_never_notifies(self, device, events):
        device.on_orientation(0.0, 10.0, 0.0)
        for _ in range(20):
            device.update()
            assert device.is_tilted
            assert not device.is_moving
        assert events == []

    def test_compound_transition_is_suppressed(self, device, events):
        # Initial (moving, tilted) -> (stationary, horizontal) in one tick.
        settle(device)
        assert not device.is_moving
        assert not device.is_tilted
        assert events == []

    def test_movement_change_while_horizontal_notifies_once(self, device, events):
        settle(device)
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()
        device.update()
        assert len(events) == 1
        assert events[0].movement is MovementState.MOVING
        assert events[0].tilt is TiltState.HORIZONTAL

    def test_tilt_change_while_stationary_notifies(self, device, events):
        settle(device)
        device.on_orientation(0.0, 12.0, 0.0)
        device.update()
        assert [e.tilt for e in events] == [TiltState.TILTED]
        assert events[0].movement is MovementState.STATIONARY

    def test_movement_change_while_tilted_is_suppressed(self, device, events):
        settle(device)
        device.on_orientation(0.0, 12.0, 0.0)
        device.update()
        events.clear()

        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()
        assert device.is_moving
        assert events == []

    def test_tilt_change_while_moving_is_suppressed(self, device, events):
        settle(device)
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()
        events.clear()

        device.on_orientation(0.0, 0.0, 20.0)
        device.update()
        assert device.is_tilted
        assert events == []

    def test_observers_see_fresh_status(self, device):
        settle(device)
        seen = []
        device.register_on_motion_changed(lambda: seen.append(device.status.movement))
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()
        assert seen == [MovementState.MOVING]

    def test_observers_called_in_registration_order(self, device):
        order = []
        device.register_on_motion_changed(lambda: order.append("a"))
        device.register_on_motion_changed(lambda: order.append("b"))
        settle(device)
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()
        assert order == ["a", "b"]

    def test_failing_observer_does_not_block_others(self, device, caplog):
        calls = []

        def broken():
            raise RuntimeError("boom")

        device.register_on_motion_changed(broken)
        device.register_on_motion_changed(lambda: calls.append(True))
        settle(device)
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()

        assert calls == [True]
        assert "Motion callback" in caplog.text

    def test_unregister_stops_notifications(self, device, events):
        callback = device.register_on_motion_changed(lambda: events.append("extra"))
        device.unregister_on_motion_changed(callback)
        device.unregister_on_motion_changed(callback)
        settle(device)
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.update()
        assert "extra" not in events
        assert len(events) == 1

    def test_tick_is_alias_for_update(self, device, events):
        settle(device)
        device.on_motion(SHAKE_ACCEL, STILL_ROTATION)
        device.tick()
        assert len(events) == 1
