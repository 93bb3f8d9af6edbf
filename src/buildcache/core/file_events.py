"""
File event models for watch mode.

Provides data structures for filesystem events and the merged batch that
triggers one cache build pass.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class FileEventType(Enum):
    """Types of file system events."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass
class FileEvent:
    """
    A single file system event.

    Attributes:
        event_type: Type of the file event
        file_path: Path to the affected file (destination for moves)
        old_path: Previous path for MOVED events, None otherwise
        timestamp: Unix timestamp when the event occurred
    """

    event_type: FileEventType
    file_path: Path
    old_path: Path | None = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if isinstance(self.file_path, str):
            self.file_path = Path(self.file_path)
        if isinstance(self.old_path, str):
            self.old_path = Path(self.old_path)


@dataclass
class DebouncedBatch:
    """
    Events collected during one debounce window, merged per path.

    Merge rules:
    - Repeated modifications of one path collapse into one entry
    - A path created in the batch stays 'created' when modified
    - Created then deleted in the same batch cancels out
    - Deleted then recreated counts as modified
    - A move is a delete of the old path plus a create of the new one
    """

    created: set[Path] = field(default_factory=set)
    modified: set[Path] = field(default_factory=set)
    deleted: set[Path] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.created or self.modified or self.deleted)

    def total_count(self) -> int:
        return len(self.created) + len(self.modified) + len(self.deleted)

    def _add_created(self, path: Path) -> None:
        if path in self.deleted:
            self.deleted.discard(path)
            self.modified.add(path)
        elif path not in self.modified:
            self.created.add(path)

    def _add_deleted(self, path: Path) -> None:
        if path in self.created:
            self.created.discard(path)
            return
        self.modified.discard(path)
        self.deleted.add(path)

    def merge(self, event: FileEvent) -> None:
        """Merge one event into the batch."""
        path = event.file_path
        kind = event.event_type

        if kind == FileEventType.CREATED:
            self._add_created(path)
        elif kind == FileEventType.MODIFIED:
            if path in self.deleted:
                self.deleted.discard(path)
                self.modified.add(path)
            elif path not in self.created:
                self.modified.add(path)
        elif kind == FileEventType.DELETED:
            self._add_deleted(path)
        elif kind == FileEventType.MOVED:
            if event.old_path is not None:
                self._add_deleted(event.old_path)
            self._add_created(path)

    def changed_paths(self) -> list[Path]:
        """Paths whose cache state must be rechecked, in stable order."""
        return sorted(self.created | self.modified)

    def clear(self) -> None:
        self.created.clear()
        self.modified.clear()
        self.deleted.clear()

    def copy(self) -> "DebouncedBatch":
        return DebouncedBatch(
            created=set(self.created),
            modified=set(self.modified),
            deleted=set(self.deleted),
        )
