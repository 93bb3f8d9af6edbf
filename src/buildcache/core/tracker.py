"""
File state tracking: classifies a file as unchanged, changed or new.

Checks escalate from cheap to expensive: existence (stat), then size and
mtime against the stored state, and only when those disagree a full
content hash.
"""

import logging
import os
import stat
from pathlib import Path

from buildcache.core.hasher import HASH_FAILED, ContentHasher
from buildcache.core.models import CheckResult, FileState, Manifest

logger = logging.getLogger(__name__)


def stat_file(path: str | Path) -> tuple[int, float]:
    """
    Read the metadata used by the cheap check.

    Returns:
        Tuple of (size in bytes, mtime in epoch milliseconds)

    Raises:
        OSError: If the path cannot be stat'ed
        IsADirectoryError: If the path is a directory
    """
    st = os.stat(path)
    if stat.S_ISDIR(st.st_mode):
        raise IsADirectoryError(f"Not a file: {path}")
    return st.st_size, st.st_mtime_ns / 1_000_000


class FileStateTracker:
    """Compares live filesystem state against the manifest for one path at a time."""

    def __init__(self, hasher: ContentHasher):
        self._hasher = hasher

    @property
    def hasher(self) -> ContentHasher:
        return self._hasher

    def check(self, path: str, manifest: Manifest) -> CheckResult:
        """
        Classify a file and update its manifest entry.

        Never raises for filesystem errors: a missing or unreadable file is
        reported as a miss and its entry is dropped.

        Args:
            path: Normalized absolute path (manifest key)
            manifest: Manifest to read and update

        Returns:
            CheckResult with the hit flag and updated state
        """
        try:
            size, mtime = stat_file(path)
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot stat {path}: {e}")
            manifest.remove_entry(path)
            return CheckResult(hit=False, state=None, reason="missing")

        stored = manifest.get(path)

        if stored is not None and stored.same_metadata(size, mtime):
            return CheckResult(hit=True, state=stored, reason="unchanged")

        fingerprint = self._hasher.hash_file(path, size, mtime)
        if fingerprint == HASH_FAILED:
            manifest.remove_entry(path)
            return CheckResult(hit=False, state=None, reason="unreadable")

        state = FileState(path=path, hash=fingerprint, size=size, mtime=mtime)
        manifest.set_entry(state)

        if stored is None:
            return CheckResult(hit=False, state=state, reason="new")
        if fingerprint == stored.hash:
            # Same bytes, only metadata moved (e.g. a no-op save)
            return CheckResult(hit=True, state=state, reason="touched")
        return CheckResult(hit=False, state=state, reason="changed")
