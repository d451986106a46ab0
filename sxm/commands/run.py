"""
Run command implementation for the SXM telemetry client
"""

import asyncio
import signal
from typing import Optional

from sxm import __version__
from sxm.config.settings import Settings
from sxm.filters.vector import Vector3Filter
from sxm.logger import get_logger, set_device_context
from sxm.scheduling import Ticker
from sxm.sensing.feed import SimulatedSensorFeed
from sxm.session import SxmSession

logger = get_logger(__name__)


def _log_payload(event: str):
    def _handler(payload: bytes) -> None:
        logger.info("Received %s from touch table: %r", event, payload)

    return _handler


async def run_command(
    settings: Settings,
    device_id: Optional[str] = None,
    interval: Optional[float] = None,
    duration: Optional[float] = None,
    simulate: bool = False,
    seed: int = 42,
) -> None:
    """Run a session until interrupted or until ``duration`` seconds pass."""

    loop = asyncio.get_running_loop()
    session = SxmSession(settings, device_id=device_id, loop=loop)
    set_device_context(device_id=session.device_id, room_id=session.room_id)

    for event in ("start", "shutdown", "down", "up"):
        setattr(session, f"on_{event}", _log_payload(event))

    feed_ticker = None
    if simulate:
        feed = SimulatedSensorFeed(
            session.device,
            seed=seed,
            orientation_filter=Vector3Filter(**settings.get_filter_config()),
        )
        step = settings.tick_interval
        feed_ticker = Ticker(step, lambda: feed.step(step), name="simulated-feed")
        feed_ticker.start()
        logger.info("Simulated sensor feed enabled (seed=%d)", seed)

    stop_event = asyncio.Event()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s not supported on this platform", sig)

    logger.info("Starting %s v%s (%s)", settings.app_name, __version__, settings.environment)
    logger.info(
        "Publishing %s status to %s via %s",
        session.device_id, session.topics.status, settings.broker_url,
    )

    try:
        await session.run(stop_event, duration=duration, interval=interval)
    finally:
        if feed_ticker is not None:
            feed_ticker.stop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        logger.info(
            "Session finished: %d published, %d still queued",
            session.client.messages_published, len(session.client.queued_messages),
        )
