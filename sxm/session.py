"""
SXM session.

Binds one handheld ``Device`` to one room on the broker:

- publishes the device status on ``<ns>/<room>/box`` whenever the classifier
  reports a change and, in addition, on a fixed interval;
- drives the classifier at ``tick_rate_hz``;
- routes the touch table's control topics (``start``, ``shutdown``, and the
  per-device ``down``/``up``) to user callbacks.

Subscriptions are issued from a connected-callback, so every (re)connect
re-announces them to the broker.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from sxm.config.settings import Settings
from sxm.scheduling import Ticker
from sxm.sensing.device import Device
from sxm.transport.mqtt_client import BrokerConfig, MqttClient, QoS

logger = logging.getLogger(__name__)

PayloadCallback = Callable[[bytes], None]


@dataclass(frozen=True)
class SessionTopics:
    """Topic map for one device in one room."""

    status: str
    start: str
    shutdown: str
    down: str
    up: str

    @classmethod
    def build(cls, namespace: str, room_id: str, device_id: str) -> "SessionTopics":
        room = f"{namespace}/{room_id}"
        return cls(
            status=f"{room}/box",
            start=f"{room}/start",
            shutdown=f"{room}/shutdown",
            down=f"{room}/{device_id}/down",
            up=f"{room}/{device_id}/up",
        )


def generate_device_id() -> str:
    """Return a fresh device identifier (valid for this process only)."""
    return str(uuid.uuid4())


class SxmSession:
    """
    Communication session between a handheld device and a touch table.

    Parameters
    ----------
    settings : Settings
        Broker, room, classifier and timing configuration.
    device_id : str, optional
        Overrides ``settings.device_id``; a new UUID is generated when neither
        is set.
    client : MqttClient, optional
        Pre-built transport (tests inject one backed by a fake broker).
    device : Device, optional
        Pre-built classifier; its ``device_id`` wins over the other sources.
    loop : asyncio.AbstractEventLoop, optional
        Event loop the transport marshals broker callbacks onto.
    """

    def __init__(
        self,
        settings: Settings,
        device_id: Optional[str] = None,
        client: Optional[MqttClient] = None,
        device: Optional[Device] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.settings = settings

        if device is not None:
            self._device_id = device.device_id
        else:
            self._device_id = device_id or settings.device_id or generate_device_id()
        self._room_id = settings.room_id
        self.topics = SessionTopics.build(settings.topic_namespace, self._room_id, self._device_id)

        self._device = device or Device(self._device_id, **settings.get_classifier_config())
        self._device.register_on_motion_changed(self.send_status)

        self._client = client or MqttClient(
            BrokerConfig.from_settings(settings, self.client_id), loop=loop
        )
        self._client.register_on_connected(self._subscribe_topics)

        self.on_start: Optional[PayloadCallback] = None
        self.on_shutdown: Optional[PayloadCallback] = None
        self.on_down: Optional[PayloadCallback] = None
        self.on_up: Optional[PayloadCallback] = None

        self._status_ticker: Optional[Ticker] = None
        self._classifier_ticker: Optional[Ticker] = None

        logger.info(
            "Session created: room=%s device=%s broker=%s:%d",
            self._room_id, self._device_id, settings.broker_host, settings.broker_port,
        )

    # -- read-only views ---------------------------------------------------------

    @property
    def device(self) -> Device:
        return self._device

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def client(self) -> MqttClient:
        return self._client

    @property
    def client_id(self) -> str:
        return f"{self._device_id}{self.settings.client_id_suffix}"

    @property
    def broker_host(self) -> str:
        return self.settings.broker_host

    @property
    def broker_port(self) -> int:
        return self.settings.broker_port

    @property
    def running(self) -> bool:
        return self._status_ticker is not None

    # -- lifecycle ---------------------------------------------------------------

    def connect(self) -> bool:
        return self._client.connect()

    def start(self, interval: Optional[float] = None) -> None:
        """Start the periodic status timer and the classifier tick.

        Must be called from a running event loop.

        Args:
            interval: Status interval in seconds (default ``settings.status_interval``)
        """
        self.stop()
        interval = interval if interval is not None else self.settings.status_interval

        self._status_ticker = Ticker(interval, self.send_status, name="status")
        self._classifier_ticker = Ticker(
            self.settings.tick_interval, self._device.update, name="classifier"
        )
        self._classifier_ticker.start()
        self._status_ticker.start()
        logger.info("Session started (status every %.3fs)", interval)

    def stop(self) -> None:
        """Stop both timers; no status is sent by them afterwards."""
        if self._status_ticker is None and self._classifier_ticker is None:
            return
        for ticker in (self._status_ticker, self._classifier_ticker):
            if ticker is not None:
                ticker.stop()
        self._status_ticker = None
        self._classifier_ticker = None
        logger.info("Session stopped")

    def close(self) -> None:
        self.stop()
        self._client.disconnect()

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        duration: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> None:
        """Connect, run until ``stop_event`` is set (or ``duration`` elapses), then close."""
        stop_event = stop_event or asyncio.Event()
        self.connect()
        self.start(interval)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=duration)
        except asyncio.TimeoutError:
            logger.info("Session duration of %.1fs elapsed", duration)
        finally:
            self.close()

    # -- outbound ----------------------------------------------------------------

    def send_status(self) -> None:
        self._client.send(
            self.topics.status,
            self._device.status_json,
            qos=QoS.AT_LEAST_ONCE,
            retained=False,
        )

    # -- inbound -----------------------------------------------------------------

    def _subscribe_topics(self) -> None:
        self._client.subscribe(self.topics.start, self._on_start)
        self._client.subscribe(self.topics.shutdown, self._on_shutdown)
        self._client.subscribe(self.topics.down, self._on_down)
        self._client.subscribe(self.topics.up, self._on_up)

    def _on_start(self, payload: bytes) -> None:
        self._dispatch(self.on_start, payload, "start")

    def _on_shutdown(self, payload: bytes) -> None:
        self._dispatch(self.on_shutdown, payload, "shutdown")

    def _on_down(self, payload: bytes) -> None:
        self._dispatch(self.on_down, payload, "down")

    def _on_up(self, payload: bytes) -> None:
        self._dispatch(self.on_up, payload, "up")

    @staticmethod
    def _dispatch(callback: Optional[PayloadCallback], payload: Optional[bytes], event: str) -> None:
        if callback is None or payload is None:
            logger.debug("Ignoring %s message, no callback set", event)
            return
        callback(payload)

    def __repr__(self) -> str:
        return (
            f"SxmSession(room={self._room_id!r}, device={self._device_id!r}, "
            f"state={self._client.state.value})"
        )
