"""
SXM Telemetry Client
====================

Client-side telemetry pipeline that pairs a handheld device with an SXM touch
table over an MQTT broker.

This package provides:
- One-euro adaptive smoothing for noisy scalar and 3-axis sensor streams
- A hysteretic motion/tilt classifier with edge-triggered notifications
- A resilient MQTT transport that queues outbound messages while offline
- A session layer wiring the device status to the room topics

Example usage:
    >>> from sxm.config.settings import get_settings
    >>> from sxm.session import SxmSession
    >>>
    >>> session = SxmSession(get_settings())
    >>> session.connect()

For CLI usage:
    $ sxm run --room my-room --simulate
    $ sxm config show
    $ sxm topics --room my-room

License: MIT
"""

__version__ = "0.3.0"
__author__ = "SXM Team"
__license__ = "MIT"

# Package metadata
__title__ = "sxm-telemetry"
__description__ = "Motion/tilt telemetry client that reports handheld device state over MQTT"

# Version info tuple
__version_info__ = tuple(int(x) for x in __version__.split('.'))

from sxm.filters import LowPassFilter, OneEuroFilter, Vector3, Vector3Filter
from sxm.sensing import (
    Device,
    DeviceStatus,
    MovementState,
    SensorFeed,
    SensorGrant,
    TiltState,
)
from sxm.transport import BrokerConfig, ConnectionState, MqttClient, QoS

__all__ = [
    # Filters
    'LowPassFilter',
    'OneEuroFilter',
    'Vector3',
    'Vector3Filter',

    # Sensing
    'Device',
    'DeviceStatus',
    'MovementState',
    'TiltState',
    'SensorFeed',
    'SensorGrant',

    # Transport
    'BrokerConfig',
    'ConnectionState',
    'MqttClient',
    'QoS',

    # Metadata
    '__version__',
    '__version_info__',
    '__author__',
    '__license__',
]


def get_version():
    """Get the package version."""
    return __version__


def get_package_info():
    """Get package information."""
    return {
        'name': __title__,
        'version': __version__,
        'version_info': __version_info__,
        'description': __description__,
        'author': __author__,
        'license': __license__,
    }
