"""
Broker transport for the SXM telemetry client.
"""

from sxm.transport.mqtt_client import (
    BrokerConfig,
    ConnectionState,
    MqttClient,
    QoS,
    QueuedMessage,
    create_paho_client,
)

__all__ = [
    "BrokerConfig",
    "ConnectionState",
    "MqttClient",
    "QoS",
    "QueuedMessage",
    "create_paho_client",
]
