"""
Build cache service.

Ties the pattern matcher, hasher, tracker, manifest store and eviction
policy into the lifecycle a build tool drives:

    begin_build()      configuration resolved / build start
    check(path)        once per candidate module, sequentially
    end_build()        after the last check: evict, then save once if dirty

A BuildCache instance exclusively owns its manifest, hash memo and pattern
cache. It is not safe for concurrent use, and two processes sharing one
cache directory will overwrite each other's manifest (last save wins).
"""

import logging
import os
import platform
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable

from buildcache import __version__
from buildcache.core.config import CacheSettings
from buildcache.core.eviction import EvictionPolicy
from buildcache.core.hasher import ContentHasher
from buildcache.core.models import CheckResult, Manifest
from buildcache.core.pattern_matcher import PatternCache, PatternMatcher, normalize_path
from buildcache.core.tracker import FileStateTracker
from buildcache.infrastructure.manifest_store import ManifestStore

logger = logging.getLogger(__name__)

VIRTUAL_MODULE_PREFIX = "\0"


def default_tool_version() -> str:
    return f"buildcache/{__version__} python/{platform.python_version()}"


@dataclass
class BuildStats:
    """Counters for one build pass."""

    hits: int = 0
    misses: int = 0
    skipped: int = 0
    hashed: int = 0
    stale_removed: int = 0
    overflow_removed: int = 0
    saved: bool = False

    @property
    def checked(self) -> int:
        return self.hits + self.misses

    def to_dict(self) -> dict:
        return asdict(self)


class BuildCache:
    """
    Validity oracle for source files across builds.

    Answers "is this file's cached state still valid?" and keeps the
    manifest of file states. It never stores build outputs.
    """

    def __init__(
        self,
        settings: CacheSettings,
        root: Path | str,
        verbose: bool = False,
        store: ManifestStore | None = None,
    ):
        """
        Initialize the cache.

        Args:
            settings: Cache settings (directory, patterns, limits, hash algorithm)
            root: Project root; cache_directory is resolved against it
            verbose: Log a line per cache hit/miss at DEBUG level
            store: Manifest store. If None, one stamped with this tool's version is used.

        Raises:
            ConfigError: If the settings are invalid
        """
        settings.validate()
        self._settings = settings
        self._root = Path(root).resolve()
        self._cache_dir = normalize_path(os.path.abspath(self._root / settings.cache_directory))
        self._verbose = verbose
        self._store = store or ManifestStore(tool_version=default_tool_version())

        self._matcher = PatternMatcher(
            settings.include,
            settings.exclude,
            cache=PatternCache(settings.pattern_cache_size),
        )
        self._hasher = ContentHasher(
            algorithm=settings.hash_algorithm,
            length=settings.hash_length,
            max_memo_entries=settings.max_memo_entries,
        )
        self._tracker = FileStateTracker(self._hasher)
        self._eviction = EvictionPolicy(settings.max_entries)

        self._manifest: Manifest = self._store.new_manifest()
        self._loaded = False
        self._in_build = False
        self._stats = BuildStats()
        self._hash_calls_at_start = 0

    @property
    def root(self) -> Path:
        return self._root

    @property
    def manifest_path(self) -> Path:
        return self._root / self._settings.cache_directory / self._settings.manifest_name

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    @property
    def matcher(self) -> PatternMatcher:
        return self._matcher

    @property
    def hasher(self) -> ContentHasher:
        return self._hasher

    @property
    def stats(self) -> BuildStats:
        return self._stats

    @property
    def in_build(self) -> bool:
        return self._in_build

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    def load(self) -> Manifest:
        """Load the manifest from disk. Runs once, before the first check."""
        if not self._loaded:
            self._manifest = self._store.load(self.manifest_path)
            self._loaded = True
            logger.info(f"Cache initialized with {len(self._manifest)} cached files")
        return self._manifest

    def begin_build(self) -> None:
        """Start a build: load the manifest if needed and reset per-build state."""
        self.load()
        self._hasher.reset()
        self._stats = BuildStats()
        self._hash_calls_at_start = self._hasher.calls
        self._in_build = True

    def end_build(self) -> BuildStats:
        """
        Finish a build: evict, then persist once if anything changed.

        Returns:
            Stats for the finished build
        """
        if not self._in_build:
            self.begin_build()

        report = self._eviction.evict(self._manifest)
        self._stats.stale_removed = len(report.stale)
        self._stats.overflow_removed = len(report.overflow)
        self._stats.hashed = self._hasher.calls - self._hash_calls_at_start
        self._stats.saved = self._store.save(self.manifest_path, self._manifest)

        self._hasher.reset()
        self._in_build = False

        logger.info(
            f"Build cache: {self._stats.hits} hits, {self._stats.misses} misses, "
            f"{self._stats.skipped} skipped, {self._stats.hashed} hashed, "
            f"{report.total} evicted"
        )
        return self._stats

    def run_build(self, paths: Iterable[Path | str]) -> BuildStats:
        """Run one full build pass over paths."""
        self.begin_build()
        for path in paths:
            self.check(path)
        return self.end_build()

    # ─────────────────────────────────────────────────────────────────
    # Checks
    # ─────────────────────────────────────────────────────────────────

    def _key(self, path: Path | str) -> str:
        return normalize_path(os.path.abspath(path))

    def _match_target(self, key: str) -> str:
        """Match against the root-relative path when the file is under root."""
        try:
            return Path(key).relative_to(self._root).as_posix()
        except ValueError:
            return key

    def _in_cache_directory(self, key: str) -> bool:
        return key == self._cache_dir or key.startswith(self._cache_dir + "/")

    def should_cache(self, path: Path | str) -> bool:
        """Return True if path is subject to caching. The cache directory never is."""
        if str(path).startswith(VIRTUAL_MODULE_PREFIX):
            return False
        key = self._key(path)
        if self._in_cache_directory(key):
            return False
        return self._matcher.matches(self._match_target(key))

    def check(self, path: Path | str) -> CheckResult | None:
        """
        Check whether a file's cached state is still valid.

        Never raises for filesystem problems; those are reported as misses.

        Args:
            path: File path (relative paths are resolved against the cwd)

        Returns:
            CheckResult, or None if the path is not subject to caching
        """
        if not self._in_build:
            self.begin_build()

        if not self.should_cache(path):
            self._stats.skipped += 1
            return None

        key = self._key(path)
        result = self._tracker.check(key, self._manifest)
        if result.hit:
            self._stats.hits += 1
        else:
            self._stats.misses += 1

        if self._verbose:
            label = "hit" if result.hit else "miss"
            logger.debug(f"Cache {label}: {self._match_target(key)} ({result.reason})")
        return result

    # ─────────────────────────────────────────────────────────────────
    # Maintenance
    # ─────────────────────────────────────────────────────────────────

    def prune(self) -> BuildStats:
        """Run an eviction pass without checking any file and save the result."""
        self.begin_build()
        return self.end_build()

    def clear(self) -> bool:
        """
        Drop every entry and delete the manifest file.

        Returns:
            True if a manifest file was removed
        """
        self._manifest = self._store.new_manifest()
        self._loaded = True
        self._hasher.reset()
        return self._store.delete(self.manifest_path)

    def status(self) -> dict:
        """Summary of the current manifest."""
        self.load()
        return {
            "manifest_path": str(self.manifest_path),
            "manifest_exists": self.manifest_path.exists(),
            "format_version": self._manifest.format_version,
            "entries": len(self._manifest),
            "max_entries": self._eviction.max_entries,
            "hash_algorithm": self._hasher.algorithm,
            "metadata": self._manifest.metadata.to_dict(),
        }
