"""
Motion and tilt classification for a handheld device.

Turns raw acceleration, rotation-rate and orientation samples into two latched
booleans and reports transitions to registered observers:

    moving  -- peak |acceleration| > acceleration threshold OR
               peak |rotation rate| > rotation threshold
    tilted  -- max(|beta|, |gamma|) > tilt threshold (degrees)

A transition on one axis is only reported while the other axis is quiet: a
movement change is reported while horizontal, a tilt change while stationary.
Compound transitions (both axes flip in the same tick) are not reported.

The classifier owns no timer. The host calls ``update()`` at roughly 60 Hz.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sxm.sensing.samples import Acceleration, RotationRate

logger = logging.getLogger(__name__)

MotionCallback = Callable[[], None]

DEFAULT_TILT_THRESHOLD = 5.0
DEFAULT_ACCELERATION_THRESHOLD = 1.0
DEFAULT_ROTATION_THRESHOLD = 2.0


class MovementState(Enum):
    """Classified movement of the device."""

    MOVING = "moving"
    STATIONARY = "stationary"


class TiltState(Enum):
    """Classified tilt of the device."""

    TILTED = "tilted"
    HORIZONTAL = "horizontal"


@dataclass(frozen=True)
class DeviceStatus:
    """Read-only status snapshot, serialised as the ``box`` wire record."""

    device_id: str
    movement: MovementState
    tilt: TiltState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "device_movement": self.movement.value,
            "device_tilt": self.tilt.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class Device:
    """
    Hysteretic motion/tilt classifier.

    Parameters
    ----------
    device_id : str
        Identifier reported in every status record.
    tilt_threshold : float
        Angle in degrees above which the device counts as tilted (default 5).
    acceleration_threshold : float
        Peak acceleration above which the device counts as moving (default 1.0).
    rotation_threshold : float
        Peak rotation rate above which the device counts as moving (default 2.0).
    """

    def __init__(
        self,
        device_id: str,
        tilt_threshold: float = DEFAULT_TILT_THRESHOLD,
        acceleration_threshold: float = DEFAULT_ACCELERATION_THRESHOLD,
        rotation_threshold: float = DEFAULT_ROTATION_THRESHOLD,
    ) -> None:
        self._device_id = device_id
        self._tilt_threshold = tilt_threshold
        self._acceleration_threshold = acceleration_threshold
        self._rotation_threshold = rotation_threshold

        self._joined = False
        self._alpha = 0.0
        self._beta = 0.0
        self._gamma = 0.0
        self._acceleration: Optional[Acceleration] = None
        self._rotation_rate: Optional[RotationRate] = None

        self._current_moving = True
        self._last_moving = True
        self._current_tilted = True
        self._last_tilted = True

        self._on_motion_changed: List[MotionCallback] = []
        self._status = DeviceStatus(device_id, MovementState.MOVING, TiltState.TILTED)

    # -- read-only state ---------------------------------------------------------

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def is_moving(self) -> bool:
        return self._current_moving

    @property
    def is_tilted(self) -> bool:
        return self._current_tilted

    @property
    def joined(self) -> bool:
        """True once a sensor grant with at least one permission was attached."""
        return self._joined

    @property
    def orientation(self) -> tuple:
        return (self._alpha, self._beta, self._gamma)

    @property
    def status(self) -> DeviceStatus:
        return self._status

    @property
    def status_json(self) -> str:
        return self._status.to_json()

    # -- observers ---------------------------------------------------------------

    def register_on_motion_changed(self, callback: MotionCallback) -> MotionCallback:
        self._on_motion_changed.append(callback)
        return callback

    def unregister_on_motion_changed(self, callback: MotionCallback) -> None:
        try:
            self._on_motion_changed.remove(callback)
        except ValueError:
            logger.debug("Motion callback %r was not registered", callback)

    # -- sensor input ------------------------------------------------------------

    def mark_joined(self) -> None:
        self._joined = True

    def on_motion(
        self,
        acceleration: Optional[Acceleration],
        rotation_rate: Optional[RotationRate],
    ) -> None:
        """Store the latest motion sample; ``None`` clears the stored value."""
        self._acceleration = acceleration
        self._rotation_rate = rotation_rate

    def on_acceleration(self, acceleration: Optional[Acceleration]) -> None:
        """Store an acceleration sample, leaving the rotation rate untouched."""
        self._acceleration = acceleration

    def on_rotation_rate(self, rotation_rate: Optional[RotationRate]) -> None:
        """Store a rotation-rate sample, leaving the acceleration untouched."""
        self._rotation_rate = rotation_rate

    def on_orientation(
        self,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
        gamma: Optional[float] = None,
    ) -> None:
        """Update the orientation angles that are present; absent ones keep their value."""
        if alpha is not None:
            self._alpha = alpha
        if beta is not None:
            self._beta = beta
        if gamma is not None:
            self._gamma = gamma

    # -- classification ----------------------------------------------------------

    def update(self) -> None:
        """
        Run one classification step and notify observers on a reportable edge.

        ``status`` is refreshed before observers run, so a callback that reads
        it sees the classification of this tick rather than the previous one.
        """
        self._last_moving = self._current_moving
        self._last_tilted = self._current_tilted

        self._current_tilted = self._is_tilted(self._tilt_threshold)
        self._current_moving = self._is_moving(
            self._acceleration_threshold, self._rotation_threshold
        )

        self._update_status()

        moving_changed = self._current_moving != self._last_moving
        tilted_changed = self._current_tilted != self._last_tilted
        if (not self._current_tilted and moving_changed) or (
            not self._current_moving and tilted_changed
        ):
            logger.debug(
                "Device %s changed: %s/%s",
                self._device_id,
                self._status.movement.value,
                self._status.tilt.value,
            )
            self._trigger_callbacks()

    tick = update

    def _update_status(self) -> None:
        self._status = DeviceStatus(
            self._device_id,
            MovementState.MOVING if self._current_moving else MovementState.STATIONARY,
            TiltState.TILTED if self._current_tilted else TiltState.HORIZONTAL,
        )

    def _trigger_callbacks(self) -> None:
        for callback in list(self._on_motion_changed):
            try:
                callback()
            except Exception:
                logger.exception("Motion callback %r failed", callback)

    def _is_moving(self, acceleration_threshold: float, rotation_threshold: float) -> bool:
        if self._acceleration is None or self._rotation_rate is None:
            return False
        return (
            self._acceleration.peak > acceleration_threshold
            or self._rotation_rate.peak > rotation_threshold
        )

    def _is_tilted(self, angle_threshold: float) -> bool:
        return max(abs(self._beta), abs(self._gamma)) > angle_threshold

    def __repr__(self) -> str:
        return (
            f"Device(id={self._device_id!r}, moving={self._current_moving}, "
            f"tilted={self._current_tilted})"
        )
