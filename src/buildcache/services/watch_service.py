"""
Watch Service: reruns cache build passes as files change.

Each debounced batch of file events becomes one build pass, so the hash
memo is reset between passes and files edited while watching are
rehashed.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from buildcache.core.debouncer import Debouncer
from buildcache.core.errors import BuildCacheError
from buildcache.core.file_events import DebouncedBatch, FileEvent
from buildcache.infrastructure.file_watcher import FileWatcherInterface
from buildcache.services.build_cache import BuildCache, BuildStats

logger = logging.getLogger(__name__)


@dataclass
class WatchStats:
    """Statistics for the watch service."""

    started_at: datetime = field(default_factory=datetime.now)
    events_received: int = 0
    builds_run: int = 0
    last_build_at: datetime | None = None
    last_build_duration_ms: float = 0.0
    errors: int = 0

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "events_received": self.events_received,
            "builds_run": self.builds_run,
            "last_build_at": self.last_build_at.isoformat() if self.last_build_at else None,
            "last_build_duration_ms": self.last_build_duration_ms,
            "errors": self.errors,
        }


class WatchServiceError(BuildCacheError):
    """Raised when the watch service is misused (e.g. started twice)."""
    pass


class WatchService:
    """
    Coordinates a FileWatcher, a Debouncer and a BuildCache.

    Build passes are serialized: a batch that arrives while a pass runs
    waits for it to finish.
    """

    def __init__(
        self,
        cache: BuildCache,
        file_watcher: FileWatcherInterface,
        debounce_ms: int = 300,
    ):
        self._cache = cache
        self._file_watcher = file_watcher
        self._debounce_ms = debounce_ms
        self._debouncer: Debouncer | None = None
        self._stats = WatchStats()
        self._running = False
        self._build_lock = asyncio.Lock()
        self._event_loop: asyncio.AbstractEventLoop | None = None
        self._last_build: BuildStats | None = None

    @property
    def last_build(self) -> BuildStats | None:
        return self._last_build

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> WatchStats:
        return self._stats

    async def start(self) -> None:
        """
        Load the manifest and start watching the cache root.

        Raises:
            WatchServiceError: If the service is already running
        """
        if self._running:
            raise WatchServiceError("Watch service is already running")

        self._event_loop = asyncio.get_running_loop()
        await asyncio.to_thread(self._cache.load)

        self._debouncer = Debouncer(
            delay_ms=self._debounce_ms,
            on_batch_ready=self._on_batch_ready,
        )
        self._stats = WatchStats()
        self._running = True
        self._file_watcher.start(self._cache.root, self._on_file_event_sync)
        logger.info(f"Watch service started for {self._cache.root}")

    async def stop(self) -> None:
        """Flush pending events, wait for the running pass and stop watching."""
        if not self._running:
            return

        if self._debouncer is not None and self._debouncer.has_pending():
            await self._debouncer.flush()

        async with self._build_lock:
            self._file_watcher.stop()
            self._running = False
            self._debouncer = None
            self._event_loop = None

        logger.info(f"Watch service stopped: {self._stats.to_dict()}")

    def _on_file_event_sync(self, event: FileEvent) -> None:
        """Called on the watcher thread; hands the event to the event loop."""
        if self._event_loop is None or not self._running:
            return
        asyncio.run_coroutine_threadsafe(self._on_file_event(event), self._event_loop)

    async def _on_file_event(self, event: FileEvent) -> None:
        if not self._running or self._debouncer is None:
            return
        self._stats.events_received += 1
        logger.debug(f"File change detected: {event.event_type.value} - {event.file_path}")
        await self._debouncer.add_event(event)

    async def _on_batch_ready(self, batch: DebouncedBatch) -> None:
        if batch.is_empty():
            return

        async with self._build_lock:
            started = time.perf_counter()
            try:
                self._last_build = await asyncio.to_thread(
                    self._cache.run_build, batch.changed_paths()
                )
            except Exception as e:
                self._stats.errors += 1
                logger.error(f"Build pass failed: {e}")
                return

            self._stats.builds_run += 1
            self._stats.last_build_at = datetime.now()
            self._stats.last_build_duration_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"Rechecked {len(batch.changed_paths())} changed files, "
                f"{len(batch.deleted)} deleted"
            )
