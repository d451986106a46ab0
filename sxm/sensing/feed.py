"""
Sensor feed adapters.

The permission negotiation for motion/orientation sensors happens outside this
package. Its outcome is handed in as a ``SensorGrant`` capability token; the
feed forwards samples to the classifier only for sensor kinds that were
granted, so the classifier never queries any global device API itself.

``SimulatedSensorFeed`` is a deterministic development/test source that plays
scripted phases (resting on the table, sliding across it, lifted, held in
the hand).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from sxm.filters.vector import Vector3Filter
from sxm.sensing.device import Device
from sxm.sensing.samples import Acceleration, MotionSample, Orientation, RotationRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorGrant:
    """Outcome of the sensor permission request."""

    motion: bool = False
    orientation: bool = False

    @property
    def any(self) -> bool:
        return self.motion or self.orientation

    @classmethod
    def full(cls) -> "SensorGrant":
        return cls(motion=True, orientation=True)

    @classmethod
    def denied(cls) -> "SensorGrant":
        return cls(motion=False, orientation=False)


class SensorFeed:
    """
    Forwards sensor events to a ``Device`` under a ``SensorGrant``.

    Parameters
    ----------
    device : Device
        Classifier receiving the samples.
    grant : SensorGrant
        Which sensor kinds may be forwarded.
    orientation_filter : Vector3Filter, optional
        Smooths complete ``(alpha, beta, gamma)`` readings before they reach
        the classifier. Partial readings are forwarded unfiltered.
    """

    def __init__(
        self,
        device: Device,
        grant: SensorGrant,
        orientation_filter: Optional[Vector3Filter] = None,
    ) -> None:
        self._device = device
        self._grant = grant
        self._orientation_filter = orientation_filter
        self._events_forwarded = 0
        self._events_dropped = 0

        if grant.any:
            device.mark_joined()
            logger.info(
                "Sensor feed attached to %s (motion=%s, orientation=%s)",
                device.device_id, grant.motion, grant.orientation,
            )
        else:
            logger.warning("Sensor access denied for %s; device stays stationary", device.device_id)

    @property
    def device(self) -> Device:
        return self._device

    @property
    def grant(self) -> SensorGrant:
        return self._grant

    @property
    def events_forwarded(self) -> int:
        return self._events_forwarded

    @property
    def events_dropped(self) -> int:
        return self._events_dropped

    def push_motion(
        self,
        acceleration: Optional[Acceleration],
        rotation_rate: Optional[RotationRate],
    ) -> bool:
        if not self._grant.motion:
            self._events_dropped += 1
            return False
        self._device.on_motion(acceleration, rotation_rate)
        self._events_forwarded += 1
        return True

    def push_acceleration(self, acceleration: Optional[Acceleration]) -> bool:
        if not self._grant.motion:
            self._events_dropped += 1
            return False
        self._device.on_acceleration(acceleration)
        self._events_forwarded += 1
        return True

    def push_rotation_rate(self, rotation_rate: Optional[RotationRate]) -> bool:
        if not self._grant.motion:
            self._events_dropped += 1
            return False
        self._device.on_rotation_rate(rotation_rate)
        self._events_forwarded += 1
        return True

    def push_orientation(self, orientation: Orientation, timestamp: Optional[float] = None) -> bool:
        if not self._grant.orientation:
            self._events_dropped += 1
            return False

        angles = (orientation.alpha, orientation.beta, orientation.gamma)
        if self._orientation_filter is not None and None not in angles:
            angles = tuple(self._orientation_filter.filter(*angles, timestamp=timestamp))
        self._device.on_orientation(*angles)
        self._events_forwarded += 1
        return True

    def push_sample(self, sample: MotionSample, timestamp: Optional[float] = None) -> None:
        if sample.acceleration is not None or sample.rotation_rate is not None:
            self.push_motion(sample.acceleration, sample.rotation_rate)
        if sample.orientation is not None:
            self.push_orientation(sample.orientation, timestamp)

    def push(self, event: Mapping[str, Any]) -> None:
        """
        Forward a raw event dictionary.

        Accepted shapes::

            {"acceleration": {"x": .., "y": .., "z": ..},
             "rotationRate": {"alpha": .., "beta": .., "gamma": ..}}
            {"orientation": {"alpha": .., "beta": .., "gamma": ..}}

        An event carrying only one of ``acceleration`` / ``rotationRate``
        updates that kind and keeps the other. A key present with a ``null``
        or malformed value clears the stored sample.
        """
        if not isinstance(event, Mapping):
            logger.debug("Ignoring non-mapping sensor event: %r", event)
            return

        has_acceleration = "acceleration" in event
        has_rotation = "rotationRate" in event
        if has_acceleration and has_rotation:
            self.push_motion(
                Acceleration.from_mapping(event["acceleration"]),
                RotationRate.from_mapping(event["rotationRate"]),
            )
        elif has_acceleration:
            self.push_acceleration(Acceleration.from_mapping(event["acceleration"]))
        elif has_rotation:
            self.push_rotation_rate(RotationRate.from_mapping(event["rotationRate"]))

        orientation = Orientation.from_mapping(event.get("orientation"))
        if orientation is not None:
            self.push_orientation(orientation)


@dataclass(frozen=True)
class PhaseProfile:
    """Mean sensor magnitudes for one simulated phase."""

    acceleration: float
    rotation: float
    beta: float
    gamma: float


PHASES: Dict[str, PhaseProfile] = {
    "resting": PhaseProfile(acceleration=0.0, rotation=0.0, beta=0.0, gamma=0.0),
    "sliding": PhaseProfile(acceleration=2.0, rotation=10.0, beta=0.0, gamma=0.0),
    "lifted": PhaseProfile(acceleration=2.5, rotation=45.0, beta=25.0, gamma=10.0),
    "handheld": PhaseProfile(acceleration=0.0, rotation=0.0, beta=30.0, gamma=5.0),
}

DEFAULT_SCRIPT: Tuple[Tuple[str, float], ...] = (
    ("resting", 3.0),
    ("sliding", 1.0),
    ("resting", 2.0),
    ("handheld", 3.0),
    ("lifted", 1.0),
)


class SimulatedSensorFeed(SensorFeed):
    """
    Deterministic simulated sensor source.

    Cycles through ``script`` (a sequence of ``(phase, seconds)`` pairs) and
    generates one motion+orientation sample per ``step``. Gaussian noise comes
    from a seeded numpy generator, so the same seed yields the same samples.

    This is a development tool; it makes no attempt to model real IMU physics.
    """

    _ACCEL_AXES = np.array([1.0, -0.5, 0.3])
    _ROTATION_AXES = np.array([0.4, 1.0, -0.6])

    def __init__(
        self,
        device: Device,
        seed: int = 42,
        noise_std: float = 0.05,
        script: Sequence[Tuple[str, float]] = DEFAULT_SCRIPT,
        grant: Optional[SensorGrant] = None,
        orientation_filter: Optional[Vector3Filter] = None,
    ) -> None:
        super().__init__(device, grant or SensorGrant.full(), orientation_filter)
        for phase, duration in script:
            if phase not in PHASES:
                raise ValueError(f"Unknown phase {phase!r}; expected one of {sorted(PHASES)}")
            if duration <= 0:
                raise ValueError(f"Phase duration must be > 0, got {duration}")
        if not script:
            raise ValueError("Script must contain at least one phase")

        self._rng = np.random.default_rng(seed)
        self._noise_std = noise_std
        self._script: List[Tuple[str, float]] = list(script)
        self._elapsed = 0.0
        self._forced_phase: Optional[str] = None

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def phase(self) -> str:
        if self._forced_phase is not None:
            return self._forced_phase
        cycle = sum(duration for _, duration in self._script)
        t = self._elapsed % cycle
        for phase, duration in self._script:
            if t < duration:
                return phase
            t -= duration
        return self._script[-1][0]

    def set_phase(self, phase: Optional[str]) -> None:
        """Pin the feed to ``phase``; ``None`` returns to the script."""
        if phase is not None and phase not in PHASES:
            raise ValueError(f"Unknown phase {phase!r}; expected one of {sorted(PHASES)}")
        self._forced_phase = phase

    def sample(self) -> MotionSample:
        profile = PHASES[self.phase]
        noise = self._rng.normal(0.0, self._noise_std, size=8)

        accel = profile.acceleration * self._ACCEL_AXES + noise[0:3]
        rotation = profile.rotation * self._ROTATION_AXES + noise[3:6]

        return MotionSample(
            acceleration=Acceleration(*(float(v) for v in accel)),
            rotation_rate=RotationRate(*(float(v) for v in rotation)),
            orientation=Orientation(
                alpha=0.0,
                beta=profile.beta + float(noise[6]),
                gamma=profile.gamma + float(noise[7]),
            ),
        )

    def step(self, dt: float) -> MotionSample:
        """Advance scripted time by ``dt`` seconds and push one sample."""
        self._elapsed += dt
        sample = self.sample()
        self.push_sample(sample, timestamp=self._elapsed)
        return sample
