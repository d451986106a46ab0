"""
Device Motion Sensing
=====================

Classifies a handheld device as moving/stationary and tilted/horizontal from
accelerometer, gyroscope and orientation samples.

Components:
    - samples: Acceleration, RotationRate, Orientation sample types
    - device: Device classifier and the DeviceStatus wire record
    - feed: permission-gated sensor feed and a simulated source
"""

from sxm.sensing.samples import (
    Acceleration,
    MotionSample,
    Orientation,
    RotationRate,
)
from sxm.sensing.device import (
    Device,
    DeviceStatus,
    MovementState,
    TiltState,
)
from sxm.sensing.feed import (
    SensorFeed,
    SensorGrant,
    SimulatedSensorFeed,
)

__all__ = [
    "Acceleration",
    "MotionSample",
    "Orientation",
    "RotationRate",
    "Device",
    "DeviceStatus",
    "MovementState",
    "TiltState",
    "SensorFeed",
    "SensorGrant",
    "SimulatedSensorFeed",
]
