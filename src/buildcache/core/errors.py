"""Exception types for buildcache."""


class BuildCacheError(Exception):
    """Base exception for buildcache errors."""
    pass


class ConfigError(BuildCacheError):
    """Raised when the cache configuration is invalid."""
    pass
