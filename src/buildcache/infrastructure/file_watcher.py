"""
File watcher infrastructure component.

Monitors a directory with watchdog and reports file events for paths the
build cache would check.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from buildcache.core.file_events import FileEvent, FileEventType

logger = logging.getLogger(__name__)

PathFilter = Callable[[str], bool]


class FileWatcherInterface(Protocol):
    """Protocol for file watcher implementations."""

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None:
        ...

    def stop(self) -> None:
        ...

    def is_running(self) -> bool:
        ...


class FileWatcher(FileWatcherInterface):
    """
    watchdog-backed watcher.

    Callbacks run on the observer thread; callers that need the event loop
    must hand events over themselves.
    """

    def __init__(self, accept: PathFilter):
        """
        Initialize the file watcher.

        Args:
            accept: Returns True for paths that should produce events
        """
        self._path_filter = accept
        self._observer: Observer | None = None
        self._callback: Callable[[FileEvent], None] | None = None
        self._watch_path: Path | None = None
        self._lock = threading.Lock()

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None:
        """
        Start watching a directory recursively.

        Raises:
            ValueError: If path doesn't exist or isn't a directory
            RuntimeError: If the watcher is already running
        """
        with self._lock:
            if self._observer is not None and self._observer.is_alive():
                raise RuntimeError("File watcher is already running")

            path = Path(path).resolve()
            if not path.exists():
                raise ValueError(f"Path does not exist: {path}")
            if not path.is_dir():
                raise ValueError(f"Path is not a directory: {path}")

            self._watch_path = path
            self._callback = callback

            handler = _WatchdogEventHandler(callback=self._handle_event, accept=self._path_filter)
            self._observer = Observer()
            self._observer.schedule(handler, str(path), recursive=True)
            self._observer.start()

            logger.info(f"Started watching: {path}")

    def stop(self) -> None:
        with self._lock:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=5.0)
                self._observer = None
                logger.info(f"Stopped watching: {self._watch_path}")
            self._callback = None
            self._watch_path = None

    def is_running(self) -> bool:
        with self._lock:
            return self._observer is not None and self._observer.is_alive()

    def _handle_event(self, event: FileEvent) -> None:
        if self._callback is not None:
            try:
                self._callback(event)
            except Exception as e:
                logger.error(f"Error in file event callback: {e}")


class _WatchdogEventHandler(FileSystemEventHandler):
    """Converts watchdog events to FileEvent objects, dropping unmatched paths."""

    def __init__(self, callback: Callable[[FileEvent], None], accept: PathFilter):
        super().__init__()
        self._callback = callback
        self._path_filter = accept

    def _emit(self, event_type: FileEventType, path: Path, old_path: Path | None = None) -> None:
        logger.debug(f"Emitting event: {event_type.value} - {path}")
        self._callback(FileEvent(event_type=event_type, file_path=path, old_path=old_path))

    def _accept(self, event: FileSystemEvent, path: str) -> bool:
        return not event.is_directory and self._path_filter(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if self._accept(event, event.src_path):
            self._emit(FileEventType.CREATED, Path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if self._accept(event, event.src_path):
            self._emit(FileEventType.MODIFIED, Path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if self._accept(event, event.src_path):
            self._emit(FileEventType.DELETED, Path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        src_ok = self._accept(event, event.src_path)
        dest_ok = self._accept(event, event.dest_path)
        if dest_ok:
            self._emit(
                FileEventType.MOVED,
                Path(event.dest_path),
                old_path=Path(event.src_path) if src_ok else None,
            )
        elif src_ok:
            self._emit(FileEventType.DELETED, Path(event.src_path))
