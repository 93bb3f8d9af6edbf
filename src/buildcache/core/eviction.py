"""
Eviction policy keeping the manifest bounded.
"""

import logging
import os

from buildcache.core.models import EvictionReport, Manifest

logger = logging.getLogger(__name__)


class EvictionPolicy:
    """
    Removes stale entries and enforces an entry cap.

    The cap drops the oldest entries by manifest insertion order. This only
    approximates recency, which is fine: exceeding the cap costs extra cache
    misses, never wrong hits.
    """

    def __init__(self, max_entries: int = 10000):
        """
        Initialize the policy.

        Args:
            max_entries: Maximum number of entries kept. Values <= 0 disable the cap.
        """
        self._max_entries = max_entries

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def evict(self, manifest: Manifest) -> EvictionReport:
        """
        Run stale removal then capacity enforcement.

        Args:
            manifest: Manifest to trim in place (marked dirty on any removal)

        Returns:
            EvictionReport listing removed paths
        """
        report = EvictionReport()

        for path in [p for p in manifest.entries if not os.path.exists(p)]:
            manifest.remove_entry(path)
            report.stale.append(path)

        if self._max_entries > 0:
            overflow = len(manifest) - self._max_entries
            if overflow > 0:
                for path in list(manifest.entries)[:overflow]:
                    manifest.remove_entry(path)
                    report.overflow.append(path)

        if report.stale:
            logger.info(f"Cleaned up {len(report.stale)} stale cache entries")
        if report.overflow:
            logger.info(
                f"Evicted {len(report.overflow)} oldest cache entries "
                f"(max_entries={self._max_entries})"
            )

        return report
