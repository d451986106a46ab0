"""
Resilient MQTT client.

Wraps a paho-mqtt client (websocket transport, TLS) with:

- an unbounded FIFO outbox that buffers ``send`` calls while the broker is
  unreachable and replays them, in order, on the next successful connect;
- a topic -> handler table for inbound messages;
- connected / disconnected lifecycle callbacks.

paho runs its network loop on a background thread. When an asyncio event loop
is supplied, every paho callback is handed over to that loop with
``call_soon_threadsafe`` so all state changes happen on a single thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Union

import paho.mqtt.client as mqtt

Payload = Union[bytes, str]
MessageHandler = Callable[[bytes], None]
LifecycleCallback = Callable[[], None]


class QoS(IntEnum):
    """MQTT quality-of-service level."""

    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class ConnectionState(Enum):
    """Broker connection state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class QueuedMessage:
    """Outbound message held while the broker is unreachable."""

    topic: str
    qos: QoS
    payload: Payload
    retained: bool = False


@dataclass(frozen=True)
class BrokerConfig:
    """Immutable broker connection parameters."""

    host: str
    client_id: str
    port: int = 8884
    username: Optional[str] = None
    password: Optional[str] = None
    path: str = "/mqtt"
    use_tls: bool = True
    keepalive: int = 60
    reconnect_min_delay: int = 1
    reconnect_max_delay: int = 30

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Broker host must not be empty")
        if not self.client_id:
            raise ValueError("Client id must not be empty")
        if not 1 <= self.port <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        if self.keepalive <= 0:
            raise ValueError("Keepalive must be a positive number of seconds")
        if self.reconnect_min_delay <= 0 or self.reconnect_min_delay > self.reconnect_max_delay:
            raise ValueError("Reconnect delays must satisfy 0 < min <= max")

    @classmethod
    def from_settings(cls, settings: Any, client_id: str) -> "BrokerConfig":
        """Build a config from a ``Settings`` object."""
        return cls(
            host=settings.broker_host,
            client_id=client_id,
            port=settings.broker_port,
            username=settings.broker_username,
            password=settings.broker_password,
            path=settings.broker_path,
            use_tls=settings.broker_use_tls,
            keepalive=settings.broker_keepalive,
            reconnect_min_delay=settings.reconnect_min_delay,
            reconnect_max_delay=settings.reconnect_max_delay,
        )


def create_paho_client(config: BrokerConfig) -> mqtt.Client:
    """Create a paho client for a websocket broker endpoint."""
    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=config.client_id,
        transport="websockets",
    )
    client.ws_set_options(path=config.path)
    if config.use_tls:
        client.tls_set()
    if config.username:
        client.username_pw_set(config.username, config.password or None)
    client.reconnect_delay_set(
        min_delay=config.reconnect_min_delay,
        max_delay=config.reconnect_max_delay,
    )
    client.enable_logger(logging.getLogger("paho.mqtt"))
    return client


def _reason_value(reason_code: Any) -> int:
    value = getattr(reason_code, "value", reason_code)
    try:
        return int(value)
    except (TypeError, ValueError):
        return -1


def _is_failure(reason_code: Any) -> bool:
    is_failure = getattr(reason_code, "is_failure", None)
    if is_failure is not None:
        return bool(is_failure)
    value = _reason_value(reason_code)
    return value < 0 or value >= 0x80


class MqttClient:
    """
    Publish/subscribe client that tolerates broker disconnects.

    Parameters
    ----------
    config : BrokerConfig
        Connection parameters; fixed for the lifetime of the client.
    client_factory : callable, optional
        Builds the underlying paho client from ``config``
        (default ``create_paho_client``).
    loop : asyncio.AbstractEventLoop, optional
        Event loop that paho callbacks are marshalled onto.
    logger : logging.Logger, optional
        Logger instance.
    """

    def __init__(
        self,
        config: BrokerConfig,
        client_factory: Optional[Callable[[BrokerConfig], Any]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._loop = loop

        self._state = ConnectionState.DISCONNECTED
        self._queue: Deque[QueuedMessage] = deque()
        self._subscriptions: Dict[str, Optional[MessageHandler]] = {}
        self._pending_subscriptions: Dict[int, Tuple[str, Optional[MessageHandler]]] = {}
        self._on_connected: List[LifecycleCallback] = []
        self._on_disconnected: List[LifecycleCallback] = []

        self.messages_published = 0
        self.messages_received = 0
        self.messages_dropped = 0

        factory = client_factory or create_paho_client
        self._client = factory(config)
        self._client.on_connect = self._marshal(self._handle_connect)
        self._client.on_disconnect = self._marshal(self._handle_disconnect)
        self._client.on_message = self._marshal(self._handle_message)
        self._client.on_subscribe = self._marshal(self._handle_subscribe)

    # -- read-only views ---------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def queued_messages(self) -> Tuple[QueuedMessage, ...]:
        return tuple(self._queue)

    @property
    def subscriptions(self) -> Dict[str, Optional[MessageHandler]]:
        return dict(self._subscriptions)

    # -- lifecycle ---------------------------------------------------------------

    def register_on_connected(self, callback: LifecycleCallback) -> None:
        self._on_connected.append(callback)

    def register_on_disconnected(self, callback: LifecycleCallback) -> None:
        self._on_disconnected.append(callback)

    def connect(self) -> bool:
        """Start connecting in the background.

        Returns:
            True if the connection attempt was started, False otherwise
        """
        if self._state is not ConnectionState.DISCONNECTED:
            self.logger.debug("Connect ignored, client is %s", self._state.value)
            return False

        self._state = ConnectionState.CONNECTING
        self.logger.info(
            "Connecting to MQTT broker %s:%d%s as %s",
            self.config.host, self.config.port, self.config.path, self.config.client_id,
        )
        try:
            self._client.connect_async(self.config.host, self.config.port, self.config.keepalive)
            self._client.loop_start()
        except (OSError, ValueError) as e:
            self._state = ConnectionState.DISCONNECTED
            self.logger.error("Failed to start MQTT connection: %s", e)
            return False
        return True

    def disconnect(self) -> None:
        """Close the connection cleanly and stop the network loop."""
        if self._state is ConnectionState.CONNECTED:
            self._client.disconnect()
        else:
            self._state = ConnectionState.DISCONNECTED
        self._client.loop_stop()

    # -- outbound ----------------------------------------------------------------

    def send(
        self,
        topic: str,
        payload: Payload,
        qos: Union[QoS, int] = QoS.AT_MOST_ONCE,
        retained: bool = False,
    ) -> None:
        """Publish now if connected, otherwise queue for the next connect."""
        message = QueuedMessage(topic=topic, qos=QoS(qos), payload=payload, retained=retained)

        # While a backlog exists, new messages go behind it to keep FIFO order.
        if self.is_connected and not self._queue:
            self._publish(message)
        else:
            self._queue.append(message)
            self.logger.debug(
                "Queued message for %s (%d pending, state=%s)",
                topic, len(self._queue), self._state.value,
            )

    def _publish(self, message: QueuedMessage) -> None:
        info = self._client.publish(
            message.topic, message.payload, qos=int(message.qos), retain=message.retained
        )
        rc = getattr(info, "rc", mqtt.MQTT_ERR_SUCCESS)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.debug("Publish to %s returned rc=%s", message.topic, rc)
        self.messages_published += 1

    def _flush_queue(self) -> None:
        flushed = 0
        while self._queue and self.is_connected:
            self._publish(self._queue.popleft())
            flushed += 1
        if flushed:
            self.logger.info("Flushed %d queued message(s)", flushed)

    # -- inbound -----------------------------------------------------------------

    def subscribe(self, topic: str, handler: Optional[MessageHandler]) -> None:
        """Subscribe at QoS 1; a no-op unless connected."""
        if not self.is_connected:
            self.logger.debug("Subscribe to %s ignored, client is %s", topic, self._state.value)
            return

        result, mid = self._client.subscribe(topic, qos=int(QoS.AT_LEAST_ONCE))
        if result != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning("Subscribe to %s failed: rc=%s", topic, result)
            return
        self._pending_subscriptions[mid] = (topic, handler)

    def _handle_subscribe(self, client, userdata, mid, reason_code_list, properties=None) -> None:
        pending = self._pending_subscriptions.pop(mid, None)
        if pending is None:
            self.logger.debug("SUBACK for unknown message id %s", mid)
            return

        topic, handler = pending
        failures = [rc for rc in (reason_code_list or []) if _is_failure(rc)]
        if failures:
            self.logger.warning("Broker rejected subscription to %s: %s", topic, failures)
            return

        self._subscriptions[topic] = handler
        self.logger.info("Subscribed to %s", topic)

    def _handle_message(self, client, userdata, message) -> None:
        topic = message.topic
        self.messages_received += 1

        if topic not in self._subscriptions:
            self.messages_dropped += 1
            self.logger.debug("No handler for topic %s, message dropped", topic)
            return

        handler = self._subscriptions[topic]
        if handler is None:
            self.messages_dropped += 1
            self.logger.warning("Handler for topic %s is not callable, message dropped", topic)
            return

        try:
            handler(message.payload)
        except Exception:
            self.logger.exception("Handler for topic %s failed", topic)

    # -- connection events -------------------------------------------------------

    def _handle_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if _is_failure(reason_code):
            self._state = ConnectionState.DISCONNECTED
            self.logger.error("MQTT broker refused connection: %s", reason_code)
            return

        self._state = ConnectionState.CONNECTED
        self.logger.info("MQTT client connected.")
        self._trigger_callbacks(self._on_connected)
        self._flush_queue()

    def _handle_disconnect(
        self, client, userdata, disconnect_flags=None, reason_code=0, properties=None
    ) -> None:
        self._state = ConnectionState.DISCONNECTED
        # SUBACKs in flight are lost with the session; the table is rebuilt on reconnect.
        self._pending_subscriptions.clear()
        if _reason_value(reason_code) != 0:
            self.logger.warning("MQTT connection lost: %s", reason_code)
            return

        self.logger.info("MQTT client disconnected.")
        self._trigger_callbacks(self._on_disconnected)

    def _trigger_callbacks(self, callbacks: List[LifecycleCallback]) -> None:
        for callback in list(callbacks):
            try:
                callback()
            except Exception:
                self.logger.exception("Lifecycle callback %r failed", callback)

    def _marshal(self, handler: Callable[..., None]) -> Callable[..., None]:
        if self._loop is None:
            return handler

        loop = self._loop

        def _threadsafe(*args: Any) -> None:
            loop.call_soon_threadsafe(handler, *args)

        return _threadsafe

    def __repr__(self) -> str:
        return (
            f"MqttClient(host={self.config.host!r}, state={self._state.value}, "
            f"queued={len(self._queue)}, subscriptions={len(self._subscriptions)})"
        )
