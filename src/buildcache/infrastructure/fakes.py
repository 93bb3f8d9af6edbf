"""
Test doubles for infrastructure components.
"""

from collections.abc import Callable
from pathlib import Path

from buildcache.core.file_events import FileEvent


class FakeFileWatcher:
    """
    Fake file watcher for testing.

    Events are injected with trigger_event instead of coming from the
    file system. Implements the FileWatcherInterface protocol.
    """

    def __init__(self) -> None:
        self._callback: Callable[[FileEvent], None] | None = None
        self._watch_path: Path | None = None
        self._running = False
        self._events: list[FileEvent] = []

    @property
    def watch_path(self) -> Path | None:
        return self._watch_path

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None:
        if self._running:
            raise RuntimeError("File watcher is already running")
        self._watch_path = Path(path).resolve()
        self._callback = callback
        self._running = True

    def stop(self) -> None:
        self._running = False
        self._callback = None
        self._watch_path = None

    def is_running(self) -> bool:
        return self._running

    def trigger_event(self, event: FileEvent) -> None:
        """Deliver an event as if the file system had produced it."""
        if not self._running:
            raise RuntimeError("File watcher is not running")
        self._events.append(event)
        if self._callback is not None:
            self._callback(event)

    def get_triggered_events(self) -> list[FileEvent]:
        return list(self._events)
