"""
Core Layer - Configuration, models, pattern matching, hashing, state tracking and eviction.
"""

from buildcache.core.config import (
    BuildCacheConfig,
    CacheSettings,
    LoggingConfig,
    WatchSettings,
    load_config,
)
from buildcache.core.errors import BuildCacheError, ConfigError
from buildcache.core.eviction import EvictionPolicy
from buildcache.core.hasher import HASH_FAILED, ContentHasher
from buildcache.core.models import (
    CURRENT_FORMAT_VERSION,
    LEGACY_FORMAT_VERSION,
    CheckResult,
    EvictionReport,
    FileState,
    Manifest,
    ManifestMetadata,
)
from buildcache.core.pattern_matcher import PatternCache, PatternMatcher, PatternRule
from buildcache.core.tracker import FileStateTracker, stat_file

__all__ = [
    # Config
    "BuildCacheConfig",
    "CacheSettings",
    "WatchSettings",
    "LoggingConfig",
    "load_config",
    # Errors
    "BuildCacheError",
    "ConfigError",
    # Models
    "CURRENT_FORMAT_VERSION",
    "LEGACY_FORMAT_VERSION",
    "CheckResult",
    "EvictionReport",
    "FileState",
    "Manifest",
    "ManifestMetadata",
    # Components
    "PatternCache",
    "PatternMatcher",
    "PatternRule",
    "ContentHasher",
    "HASH_FAILED",
    "FileStateTracker",
    "stat_file",
    "EvictionPolicy",
]
