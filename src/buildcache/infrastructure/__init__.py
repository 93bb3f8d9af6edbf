"""
Infrastructure Layer - Manifest persistence and file system watching.
"""

from buildcache.infrastructure.fakes import FakeFileWatcher
from buildcache.infrastructure.file_watcher import FileWatcher, FileWatcherInterface
from buildcache.infrastructure.manifest_store import ManifestShapeError, ManifestStore

__all__ = [
    "ManifestStore",
    "ManifestShapeError",
    "FileWatcher",
    "FileWatcherInterface",
    "FakeFileWatcher",
]
