"""
Service Layer - BuildCache lifecycle and WatchService.
"""

from buildcache.services.build_cache import BuildCache, BuildStats
from buildcache.services.watch_service import WatchService, WatchServiceError, WatchStats

__all__ = [
    "BuildCache",
    "BuildStats",
    "WatchService",
    "WatchServiceError",
    "WatchStats",
]
