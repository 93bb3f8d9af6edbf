"""
buildcache - incremental build cache engine.

Tracks per-file fingerprints across builds and answers whether a file's
cached state is still valid.
"""

__version__ = "0.2.0"

from buildcache.core.config import BuildCacheConfig, CacheSettings, load_config
from buildcache.core.errors import BuildCacheError, ConfigError
from buildcache.core.models import CheckResult, FileState, Manifest
from buildcache.services.build_cache import BuildCache, BuildStats

__all__ = [
    "__version__",
    "BuildCache",
    "BuildStats",
    "BuildCacheConfig",
    "CacheSettings",
    "load_config",
    "BuildCacheError",
    "ConfigError",
    "CheckResult",
    "FileState",
    "Manifest",
]
