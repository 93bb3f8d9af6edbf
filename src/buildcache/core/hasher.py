"""
Content hashing with a per-build memo.
"""

import hashlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Returned when a file cannot be read. Never equal to a real fingerprint.
HASH_FAILED = ""

_READ_CHUNK_SIZE = 64 * 1024


class ContentHasher:
    """
    Computes short fingerprints of file contents.

    Hashes are memoized per (path, size, mtime) for the duration of one
    build, so a file rewritten mid-build is read again. The memo
    must be reset at the start of every build because a file may change
    between builds without the process restarting (watch mode).
    """

    def __init__(
        self,
        algorithm: str = "sha256",
        length: int = 16,
        max_memo_entries: int = 10000,
    ):
        """
        Initialize the hasher.

        Args:
            algorithm: hashlib algorithm name (md5, sha1 or sha256)
            length: Number of hex characters kept from the digest
            max_memo_entries: Memo size limit; beyond it hashes are not memoized

        Raises:
            ValueError: If the algorithm is not available
        """
        self._algorithm = algorithm.lower()
        hashlib.new(self._algorithm)
        self._length = length
        self._max_memo_entries = max_memo_entries
        self._memo: dict[tuple[str, int | None, float | None], str] = {}
        self._calls = 0

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def calls(self) -> int:
        """Number of times file content was actually read and hashed."""
        return self._calls

    @property
    def memo_size(self) -> int:
        return len(self._memo)

    def reset(self) -> None:
        """Discard the memo. Called at the start of every build."""
        self._memo.clear()

    def hash_file(
        self, path: str | Path, size: int | None = None, mtime: float | None = None
    ) -> str:
        """
        Return the fingerprint of a file's current bytes.

        Args:
            path: File to hash
            size: Size from the stat the caller made, part of the memo key
            mtime: Mtime (ms) from the same stat, part of the memo key

        Returns:
            Truncated lowercase hex digest, or HASH_FAILED if the file
            could not be read
        """
        key = (str(path), size, mtime)
        memoized = self._memo.get(key)
        if memoized is not None:
            return memoized

        self._calls += 1
        digest = hashlib.new(self._algorithm)
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(_READ_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to hash file {path}: {e}")
            return HASH_FAILED

        fingerprint = digest.hexdigest()[: self._length]
        if len(self._memo) < self._max_memo_entries:
            self._memo[key] = fingerprint
        return fingerprint
