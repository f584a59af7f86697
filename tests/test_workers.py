"""Tests for the blocking-work pool."""

from __future__ import annotations

import asyncio
import threading

import pytest

from photoreel.workers import WorkerPool


class TestWorkerPool:
    async def test_runs_callable_with_args_and_kwargs(self) -> None:
        pool = WorkerPool(2)
        try:
            assert await pool.run(lambda a, b=0: a + b, 2, b=3) == 5
        finally:
            pool.shutdown()

    async def test_exceptions_propagate(self) -> None:
        pool = WorkerPool(1)

        def explode() -> None:
            raise OSError("disk full")

        try:
            with pytest.raises(OSError, match="disk full"):
                await pool.run(explode)
            assert pool.active_count == 0
        finally:
            pool.shutdown()

    async def test_limits_concurrency_and_reports_queue(self) -> None:
        pool = WorkerPool(1)
        release = threading.Event()

        try:
            first = asyncio.create_task(pool.run(release.wait, 5))
            second = asyncio.create_task(pool.run(lambda: "done"))
            await asyncio.sleep(0.05)

            assert pool.active_count == 1
            assert pool.queue_depth == 1

            release.set()
            assert await first is True
            assert await second == "done"
            assert pool.active_count == 0
            assert pool.queue_depth == 0
        finally:
            release.set()
            pool.shutdown()
