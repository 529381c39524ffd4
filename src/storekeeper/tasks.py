"""
tasks.py — Shared plumbing for the long-running background workers.

Every worker runs as one asyncio task and observes a shared cancel Event
at each sleep, so a single ``cancel.set()`` shuts the whole app down
between iterations instead of mid-request.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


async def sleep_or_cancel(cancel: asyncio.Event, seconds: float,
                          wake: Optional[asyncio.Event] = None) -> bool:
    """Sleep up to ``seconds``. Returns True if ``cancel`` fired.

    ``wake`` (if given) ends the sleep early without counting as cancellation;
    it is cleared before returning.
    """
    if cancel.is_set():
        return True
    waiters = [asyncio.ensure_future(cancel.wait())]
    if wake is not None:
        waiters.append(asyncio.ensure_future(wake.wait()))
    try:
        await asyncio.wait(waiters, timeout=max(0.0, seconds),
                           return_when=asyncio.FIRST_COMPLETED)
    finally:
        for w in waiters:
            w.cancel()
    if wake is not None:
        wake.clear()
    return cancel.is_set()


class BackgroundWorker:
    """Base for the poller, notification checker and claim scheduler."""

    name = "worker"

    def __init__(self, cancel: Optional[asyncio.Event] = None):
        self.cancel = cancel or asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def run(self):
        raise NotImplementedError

    def start(self, loop: asyncio.AbstractEventLoop):
        """Start the worker's task on ``loop``."""
        if self._task and not self._task.done():
            return
        self._task = loop.create_task(self._guarded_run())
        logger.info(f"{self.name} started")

    def stop(self):
        """Signal cancellation and cancel the task."""
        self.cancel.set()
        if self._task:
            self._task.cancel()
            self._task = None
        logger.info(f"{self.name} stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _guarded_run(self):
        try:
            await self.run()
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"{self.name} crashed: {e}", exc_info=True)
        else:
            logger.debug(f"{self.name} exited")
