"""Owned, cancellable periodic task used for status polling."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

from ch_ac_controller.logging_abstraction import get_logger

logger = get_logger(__name__)


class PollScheduler:
    """Run ``callback`` immediately and then every ``interval`` seconds.

    Only one tick loop can exist per scheduler. The callback is synchronous;
    exceptions it raises are logged and the loop keeps going.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "poll"):
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        self.interval = interval
        self.name = name
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking (no-op if already running). Requires a running loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.debug("Poll scheduler %s started (interval %.1fs)", self.name, self.interval)

    async def _run(self) -> None:
        while True:
            try:
                self._callback()
            except Exception:
                logger.exception("Poll callback %s failed", self.name, extra={"scheduler": self.name})
            await asyncio.sleep(self.interval)

    def stop(self) -> asyncio.Task[None] | None:
        """Cancel the tick loop; returns the cancelled task so callers can await it."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Poll scheduler %s stopped", self.name)
        return task

    async def aclose(self) -> None:
        """Cancel the tick loop and wait until it has finished."""
        task = self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
