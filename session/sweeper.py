"""
Optional periodic expiry sweep.

Lazy expiry only reclaims records that are looked up again. The sweeper
runs ``store.tidy()`` on a fixed interval in a background asyncio task so
that abandoned sessions do not accumulate in memory.
"""

import asyncio
import logging
from typing import Optional

from errors.exceptions import SessionError
from session.store import SessionStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Background task calling ``tidy`` on a store every ``interval_seconds``.

    Example:
        sweeper = SessionSweeper(store, interval_seconds=60)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, store: SessionStore, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Run one sweep; backend failures are logged and reported as 0."""
        try:
            removed = await self.store.tidy()
        except SessionError as e:
            logger.warning(
                "Session sweep failed",
                extra={"extra_data": {"error_code": e.error_code.value}}
            )
            return 0
        if removed:
            logger.info("Session sweep reclaimed expired sessions", extra={"extra_data": {"removed": removed}})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="session-sweeper")
        logger.info("Session sweeper started", extra={"extra_data": {"interval_seconds": self.interval_seconds}})

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")
