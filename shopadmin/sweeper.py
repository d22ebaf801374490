"""Background task that periodically evicts expired sessions."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from datetime import datetime, timedelta
from typing import Optional

from .sessions import SessionRegistry

logger = logging.getLogger("shopadmin.sweeper")

DEFAULT_SWEEP_INTERVAL = timedelta(hours=1)


class SessionSweeper:
    """Run :meth:`SessionRegistry.sweep` on a fixed interval until stopped."""

    def __init__(
        self,
        registry: SessionRegistry,
        *,
        interval: timedelta = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        if interval <= timedelta(0):
            raise ValueError("Sweep interval must be positive")
        self._registry = registry
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""

        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="session-sweeper")
        logger.debug("Session sweeper started (interval %ss)", self._interval.total_seconds())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.debug("Session sweeper stopped")

    def run_once(self, now: Optional[datetime] = None) -> int:
        removed = self._registry.sweep(now)
        if removed:
            logger.info("Cleaned up %s expired admin session(s)", removed)
        return removed

    async def _run(self) -> None:
        seconds = self._interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("Session sweep failed")


__all__ = ["DEFAULT_SWEEP_INTERVAL", "SessionSweeper"]
