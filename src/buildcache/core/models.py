"""
Data models for the build cache manifest.
"""

import time
from dataclasses import dataclass, field

CURRENT_FORMAT_VERSION = "2.0.0"
LEGACY_FORMAT_VERSION = "1.0.0"


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class FileState:
    """
    Last observed state of one tracked file.

    The hash is only trustworthy for the exact (size, mtime) pair stored
    alongside it.

    Attributes:
        path: Absolute file path with forward slashes (manifest key)
        hash: Truncated lowercase hex content fingerprint
        size: File size in bytes at last observation
        mtime: Modification time in epoch milliseconds at last observation
    """

    path: str
    hash: str
    size: int
    mtime: float

    def same_metadata(self, size: int, mtime: float) -> bool:
        """Check whether live stat values match the stored ones exactly."""
        return self.size == size and self.mtime == mtime

    def to_dict(self) -> dict:
        """Serialize to the on-disk entry shape (path is the key, not a field)."""
        return {"hash": self.hash, "size": self.size, "mtime": self.mtime}


@dataclass
class ManifestMetadata:
    """Provenance of a manifest. Used for diagnostics, never for invalidation."""

    created_at: int = field(default_factory=now_ms)
    last_modified_at: int = field(default_factory=now_ms)
    tool_version: str = ""

    def to_dict(self) -> dict:
        return {
            "createdAt": self.created_at,
            "lastModifiedAt": self.last_modified_at,
            "toolVersion": self.tool_version,
        }


@dataclass
class Manifest:
    """
    In-memory record of path -> FileState.

    Entries keep insertion order, which the eviction policy relies on.
    Every mutation marks the manifest dirty so the store knows a save
    is needed.
    """

    format_version: str = CURRENT_FORMAT_VERSION
    entries: dict[str, FileState] = field(default_factory=dict)
    metadata: ManifestMetadata = field(default_factory=ManifestMetadata)
    dirty: bool = False

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def get(self, path: str) -> FileState | None:
        return self.entries.get(path)

    def set_entry(self, state: FileState) -> None:
        """Insert or replace the entry for state.path."""
        self.entries[state.path] = state
        self.dirty = True

    def remove_entry(self, path: str) -> bool:
        """Remove the entry for path. Returns True if one existed."""
        if self.entries.pop(path, None) is None:
            return False
        self.dirty = True
        return True

    def clear(self) -> None:
        if self.entries:
            self.entries.clear()
        self.dirty = True

    def to_dict(self) -> dict:
        """Serialize to the on-disk JSON document."""
        return {
            "formatVersion": self.format_version,
            "metadata": self.metadata.to_dict(),
            "entries": {path: state.to_dict() for path, state in self.entries.items()},
        }


@dataclass
class CheckResult:
    """
    Outcome of one cache check.

    Attributes:
        hit: True if the cached state is still valid
        state: Updated FileState, or None when the file could not be observed
        reason: One of 'new', 'unchanged', 'touched', 'changed', 'missing', 'unreadable'
    """

    hit: bool
    state: FileState | None
    reason: str


@dataclass
class EvictionReport:
    """Paths removed by one eviction pass."""

    stale: list[str] = field(default_factory=list)
    overflow: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.stale) + len(self.overflow)
