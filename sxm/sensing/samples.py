"""
Raw sensor sample types.

Every axis is optional: browsers and handheld runtimes routinely deliver
events with some fields missing. Consumers treat a missing axis as 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional


def coerce_axis(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` if it is absent or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _axis_magnitude(*values: Optional[float]) -> float:
    return max(abs(v) if v is not None else 0.0 for v in values)


@dataclass(frozen=True)
class Acceleration:
    """Linear acceleration without gravity, in m/s^2."""

    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None

    @property
    def peak(self) -> float:
        """Largest absolute axis value, missing axes counted as 0."""
        return _axis_magnitude(self.x, self.y, self.z)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["Acceleration"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            x=coerce_axis(data.get("x")),
            y=coerce_axis(data.get("y")),
            z=coerce_axis(data.get("z")),
        )


@dataclass(frozen=True)
class RotationRate:
    """Angular velocity around the device axes, in deg/s."""

    alpha: Optional[float] = None
    beta: Optional[float] = None
    gamma: Optional[float] = None

    @property
    def peak(self) -> float:
        return _axis_magnitude(self.alpha, self.beta, self.gamma)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["RotationRate"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            alpha=coerce_axis(data.get("alpha")),
            beta=coerce_axis(data.get("beta")),
            gamma=coerce_axis(data.get("gamma")),
        )


@dataclass(frozen=True)
class Orientation:
    """Absolute orientation angles, in degrees."""

    alpha: Optional[float] = None
    beta: Optional[float] = None
    gamma: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["Orientation"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            alpha=coerce_axis(data.get("alpha")),
            beta=coerce_axis(data.get("beta")),
            gamma=coerce_axis(data.get("gamma")),
        )


@dataclass(frozen=True)
class MotionSample:
    """One transient reading from the sensor feed."""

    acceleration: Optional[Acceleration] = None
    rotation_rate: Optional[RotationRate] = None
    orientation: Optional[Orientation] = None
