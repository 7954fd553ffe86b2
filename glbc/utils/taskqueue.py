"""Single-worker, de-duplicating task queue with retry backoff.

A key enqueued while already pending is dropped; a key enqueued while its
sync is running is queued again once that sync returns. Failed syncs are
re-enqueued after ``base_delay * 2**failures`` seconds, capped at
``max_delay``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from glbc.observability.metrics import queue_retries_total

_log = structlog.get_logger(component="utils.taskqueue")

SyncFn = Callable[[str], Awaitable[None]]


class PeriodicTaskQueue:
    """Drains keys through ``sync_fn`` one at a time."""

    def __init__(
        self,
        name: str,
        sync_fn: SyncFn,
        base_delay: float = 0.5,
        max_delay: float = 300.0,
    ) -> None:
        self.name = name
        self._sync_fn = sync_fn
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._dirty: set[str] = set()
        self._processing: set[str] = set()
        self._failures: dict[str, int] = {}
        self._retry_handles: dict[str, asyncio.TimerHandle] = {}
        self._shutting_down = False
        self._stopped = asyncio.Event()
        self._running = False

    def __len__(self) -> int:
        return len(self._dirty)

    def enqueue(self, key: str) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key not in self._processing:
            self._queue.put_nowait(key)

    def failures(self, key: str) -> int:
        return self._failures.get(key, 0)

    def _backoff(self, key: str) -> float:
        failures = self._failures.get(key, 0)
        return min(self._base_delay * (2 ** max(failures - 1, 0)), self._max_delay)

    def _enqueue_after(self, key: str, delay: float) -> None:
        old = self._retry_handles.pop(key, None)
        if old is not None:
            old.cancel()
        loop = asyncio.get_running_loop()
        self._retry_handles[key] = loop.call_later(delay, self._retry, key)

    def _retry(self, key: str) -> None:
        self._retry_handles.pop(key, None)
        self.enqueue(key)

    async def run(self) -> None:
        """Process keys until :meth:`shutdown` is called."""
        self._running = True
        self._stopped.clear()
        _log.info("task_queue_started", queue=self.name)
        try:
            while not self._shutting_down:
                key = await self._queue.get()
                if key is None or self._shutting_down:
                    break
                await self._process(key)
        finally:
            self._running = False
            self._stopped.set()
            _log.info("task_queue_stopped", queue=self.name)

    async def _process(self, key: str) -> None:
        self._dirty.discard(key)
        self._processing.add(key)
        try:
            await self._sync_fn(key)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._failures[key] = self._failures.get(key, 0) + 1
            delay = self._backoff(key)
            _log.warning(
                "task_sync_failed",
                queue=self.name,
                key=key,
                failures=self._failures[key],
                retry_in=delay,
                error=str(exc),
            )
            queue_retries_total.labels(queue=self.name).inc()
            if not self._shutting_down:
                self._enqueue_after(key, delay)
        else:
            self._failures.pop(key, None)
        finally:
            self._processing.discard(key)
            if key in self._dirty and not self._shutting_down:
                self._queue.put_nowait(key)

    async def shutdown(self) -> None:
        """Stop the loop; a sync already running is allowed to finish."""
        self._shutting_down = True
        for handle in self._retry_handles.values():
            handle.cancel()
        self._retry_handles.clear()
        self._queue.put_nowait(None)
        if self._running:
            await self._stopped.wait()
