"""Tests for PeriodicTaskQueue: de-duplication, retry backoff, shutdown."""

from __future__ import annotations

import asyncio

from glbc.utils.taskqueue import PeriodicTaskQueue


async def _start(queue: PeriodicTaskQueue) -> asyncio.Task[None]:
    task = asyncio.create_task(queue.run())
    await asyncio.sleep(0)
    return task


async def _stop(queue: PeriodicTaskQueue, task: asyncio.Task[None]) -> None:
    await asyncio.wait_for(queue.shutdown(), timeout=2)
    await asyncio.wait_for(task, timeout=2)


class TestDeduplication:
    async def test_pending_key_is_not_duplicated(self) -> None:
        seen: list[str] = []
        done = asyncio.Event()

        async def sync(key: str) -> None:
            seen.append(key)
            if key == "b":
                done.set()

        queue = PeriodicTaskQueue("test", sync)
        queue.enqueue("a")
        queue.enqueue("a")
        queue.enqueue("b")
        assert len(queue) == 2

        task = await _start(queue)
        await asyncio.wait_for(done.wait(), timeout=2)
        await _stop(queue, task)

        assert seen == ["a", "b"]
        assert len(queue) == 0

    async def test_key_enqueued_during_sync_runs_again(self) -> None:
        calls = 0
        done = asyncio.Event()
        queue: PeriodicTaskQueue

        async def sync(key: str) -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                queue.enqueue(key)
            else:
                done.set()

        queue = PeriodicTaskQueue("test", sync)
        queue.enqueue("a")
        task = await _start(queue)
        await asyncio.wait_for(done.wait(), timeout=2)
        await _stop(queue, task)

        assert calls == 2


class TestRetry:
    async def test_failed_sync_is_retried_until_success(self) -> None:
        attempts = 0
        done = asyncio.Event()

        async def sync(key: str) -> None:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise RuntimeError("transient")
            done.set()

        queue = PeriodicTaskQueue("test", sync, base_delay=0.01, max_delay=0.05)
        queue.enqueue("a")
        task = await _start(queue)
        await asyncio.wait_for(done.wait(), timeout=2)
        await _stop(queue, task)

        assert attempts == 3
        assert queue.failures("a") == 0

    async def test_failures_are_counted(self) -> None:
        failed = asyncio.Event()

        async def sync(key: str) -> None:
            failed.set()
            raise RuntimeError("boom")

        queue = PeriodicTaskQueue("test", sync, base_delay=10.0)
        queue.enqueue("a")
        task = await _start(queue)
        await asyncio.wait_for(failed.wait(), timeout=2)
        await asyncio.sleep(0)
        assert queue.failures("a") == 1
        await _stop(queue, task)

    def test_backoff_doubles_and_caps(self) -> None:
        async def sync(key: str) -> None:
            return None

        queue = PeriodicTaskQueue("test", sync, base_delay=0.5, max_delay=3.0)
        delays = []
        for failures in range(1, 6):
            queue._failures["a"] = failures
            delays.append(queue._backoff("a"))
        assert delays == [0.5, 1.0, 2.0, 3.0, 3.0]


class TestShutdown:
    async def test_in_flight_sync_finishes(self) -> None:
        started = asyncio.Event()
        release = asyncio.Event()
        finished: list[str] = []

        async def sync(key: str) -> None:
            started.set()
            await release.wait()
            finished.append(key)

        queue = PeriodicTaskQueue("test", sync)
        queue.enqueue("a")
        task = await _start(queue)
        await asyncio.wait_for(started.wait(), timeout=2)

        stopping = asyncio.create_task(queue.shutdown())
        await asyncio.sleep(0)
        assert not stopping.done()
        release.set()
        await asyncio.wait_for(stopping, timeout=2)
        await asyncio.wait_for(task, timeout=2)

        assert finished == ["a"]

    async def test_enqueue_after_shutdown_is_ignored(self) -> None:
        async def sync(key: str) -> None:
            return None

        queue = PeriodicTaskQueue("test", sync)
        await queue.shutdown()
        queue.enqueue("a")
        assert len(queue) == 0

    async def test_pending_retry_cancelled(self) -> None:
        failed = asyncio.Event()

        async def sync(key: str) -> None:
            failed.set()
            raise RuntimeError("boom")

        queue = PeriodicTaskQueue("test", sync, base_delay=10.0)
        queue.enqueue("a")
        task = await _start(queue)
        await asyncio.wait_for(failed.wait(), timeout=2)
        await asyncio.sleep(0)
        await _stop(queue, task)
        assert queue._retry_handles == {}
