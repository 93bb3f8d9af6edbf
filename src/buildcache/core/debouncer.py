"""
Async debouncer that groups rapid file events into one build pass.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from buildcache.core.file_events import DebouncedBatch, FileEvent

logger = logging.getLogger(__name__)

BatchCallback = Callable[[DebouncedBatch], Awaitable[None]]


class Debouncer:
    """
    Collects events until none arrive for `delay_ms`, then emits the batch.

    Every new event restarts the timer.
    """

    def __init__(self, delay_ms: int = 300, on_batch_ready: BatchCallback | None = None):
        self._delay_ms = delay_ms
        self._on_batch_ready = on_batch_ready
        self._pending = DebouncedBatch()
        self._timer_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    async def add_event(self, event: FileEvent) -> None:
        """Merge an event into the pending batch and restart the timer."""
        async with self._lock:
            self._pending.merge(event)
            await self._cancel_timer()
            self._timer_task = asyncio.create_task(self._timer_callback())

    async def _cancel_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

    async def _timer_callback(self) -> None:
        try:
            await asyncio.sleep(self._delay_ms / 1000.0)
        except asyncio.CancelledError:
            return
        async with self._lock:
            # Detach so a later add_event cannot cancel the emit below
            self._timer_task = None
            batch = self._take_pending()
        await self._emit(batch)

    def _take_pending(self) -> DebouncedBatch:
        batch = self._pending.copy()
        self._pending.clear()
        return batch

    async def _emit(self, batch: DebouncedBatch) -> None:
        if batch.is_empty() or self._on_batch_ready is None:
            return
        try:
            await self._on_batch_ready(batch)
        except Exception as e:
            logger.error(f"Error in batch callback: {e}")

    async def flush(self) -> DebouncedBatch:
        """
        Emit pending events immediately.

        Returns:
            The flushed batch (may be empty)
        """
        async with self._lock:
            await self._cancel_timer()
            batch = self._take_pending()
        await self._emit(batch)
        return batch

    def has_pending(self) -> bool:
        return not self._pending.is_empty()
