"""
Cancellable periodic callbacks on the asyncio event loop.

Used by the session for the status timer and the classifier tick. A stopped
ticker never invokes its callback again, even if a wake-up was already
scheduled when ``stop()`` was called.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """Invoke ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "ticker"):
        if interval <= 0:
            raise ValueError(f"Ticker interval must be > 0, got {interval}")
        self.interval = float(interval)
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._stopped = True
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> None:
        """Schedule the ticker on the running event loop; a no-op if already running."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._stopped = False
        self._task = loop.create_task(self._run(), name=self.name)
        logger.debug("Ticker %s started (interval=%.3fs)", self.name, self.interval)

    def stop(self) -> None:
        """Cancel the ticker. Safe to call repeatedly."""
        self._stopped = True
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("Ticker %s stopped after %d tick(s)", self.name, self.ticks)

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.interval)
            if self._stopped:
                break
            self.ticks += 1
            try:
                self._callback()
            except Exception:
                logger.exception("Error in %s tick", self.name)

    def __repr__(self) -> str:
        return f"Ticker(name={self.name!r}, interval={self.interval}, running={self.running})"
