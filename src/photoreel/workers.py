"""Blocking-work concurrency layer.

Architecture:
    FastAPI (async) -> asyncio.Semaphore(N) -> ThreadPoolExecutor(N) -> Pillow / file I/O / GCS SDK

The long provider call is plain async I/O and never occupies a worker slot,
so a slow transform does not hold up listings or other requests.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerPool:
    """Manages the semaphore and thread pool for blocking calls."""

    def __init__(self, max_workers: int) -> None:
        self._semaphore = asyncio.Semaphore(max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="photoreel-worker",
        )
        self._active_count: int = 0
        self._queue_depth: int = 0
        self._counter_lock = threading.Lock()

    async def run(self, func: Callable[..., T], *args: object, **kwargs: object) -> T:
        """Run a synchronous callable in the worker thread pool.

        Waits for a free slot, runs the callable in the executor, then
        releases the slot. Exceptions raised by the callable propagate
        unchanged.
        """
        with self._counter_lock:
            self._queue_depth += 1
        try:
            await self._semaphore.acquire()
        finally:
            with self._counter_lock:
                self._queue_depth -= 1

        with self._counter_lock:
            self._active_count += 1
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))
        finally:
            self._semaphore.release()
            with self._counter_lock:
                self._active_count -= 1

    @property
    def active_count(self) -> int:
        """Number of blocking calls currently running."""
        with self._counter_lock:
            return self._active_count

    @property
    def queue_depth(self) -> int:
        """Number of calls waiting for a free slot."""
        with self._counter_lock:
            return self._queue_depth

    def shutdown(self) -> None:
        """Shut down the thread pool executor."""
        self._executor.shutdown(wait=True)
        logger.info("Worker pool shut down")
