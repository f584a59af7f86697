"""Reel poller: periodic gallery refresh while a transform is in flight.

Lifecycle:
    start()  -> refresh every ``interval`` seconds (first call after one interval)
    stop()   -> cancel the loop, then one final refresh

Only one loop exists at a time; ``start`` while active does nothing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS: float = 2.0


class ReelPoller:
    """Owns the repeating refresh task; callers never touch the task directly."""

    def __init__(self, refresh: Callable[[], Awaitable[object]], interval: float = POLL_INTERVAL_SECONDS) -> None:
        self._refresh = refresh
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Begin polling. Returns False (and does nothing) if already polling."""
        if self.active:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name="reel-poller")
        logger.debug("Reel polling started (every %.1fs)", self._interval)
        return True

    async def stop(self) -> bool:
        """Stop polling and run one final refresh. Returns False if not polling."""
        task, self._task = self._task, None
        if task is None:
            return False

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Reel polling stopped")

        await self._refresh_once()
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._refresh_once()

    async def _refresh_once(self) -> None:
        try:
            await self._refresh()
        except Exception:
            logger.exception("Reel refresh failed")
