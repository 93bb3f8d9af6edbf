"""
Configuration module for buildcache.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import hashlib
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from buildcache.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None

SUPPORTED_HASH_ALGORITHMS: tuple[str, ...] = ("md5", "sha1", "sha256")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    value = section_defaults.get(key, fallback)
    # Lists are shared through the defaults cache, hand out copies
    if isinstance(value, list):
        return list(value)
    return value


def _get_default_verbose() -> bool:
    """Verbose per-file logging defaults to on when DEBUG is set."""
    return bool(os.environ.get("DEBUG"))


@dataclass
class CacheSettings:
    """Configuration for the build cache engine."""

    cache_directory: str = field(
        default_factory=lambda: _get_default("cache", "cache_directory", ".buildcache")
    )
    manifest_name: str = field(
        default_factory=lambda: _get_default("cache", "manifest_name", "manifest.json")
    )
    include: list[str] = field(
        default_factory=lambda: _get_default("cache", "include", ["**/*.ts", "**/*.js"])
    )
    exclude: list[str] = field(
        default_factory=lambda: _get_default("cache", "exclude", ["**/node_modules/**"])
    )
    max_entries: int = field(default_factory=lambda: _get_default("cache", "max_entries", 10000))
    hash_algorithm: str = field(
        default_factory=lambda: _get_default("cache", "hash_algorithm", "sha256")
    )
    hash_length: int = field(default_factory=lambda: _get_default("cache", "hash_length", 16))
    max_memo_entries: int = field(
        default_factory=lambda: _get_default("cache", "max_memo_entries", 10000)
    )
    pattern_cache_size: int = field(
        default_factory=lambda: _get_default("cache", "pattern_cache_size", 100)
    )

    def validate(self) -> None:
        """
        Check the settings for values the engine cannot work with.

        Raises:
            ConfigError: If any setting is out of range or unsupported
        """
        algorithm = self.hash_algorithm.lower()
        if algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ConfigError(
                f"Unsupported hash algorithm '{self.hash_algorithm}', "
                f"expected one of {', '.join(SUPPORTED_HASH_ALGORITHMS)}"
            )
        digest_chars = hashlib.new(algorithm).digest_size * 2
        if not 1 <= self.hash_length <= digest_chars:
            raise ConfigError(
                f"hash_length must be between 1 and {digest_chars} for {algorithm}, "
                f"got {self.hash_length}"
            )
        if self.pattern_cache_size < 1:
            raise ConfigError(f"pattern_cache_size must be positive, got {self.pattern_cache_size}")
        if self.max_memo_entries < 0:
            raise ConfigError(f"max_memo_entries must not be negative, got {self.max_memo_entries}")
        if not self.manifest_name:
            raise ConfigError("manifest_name must not be empty")


@dataclass
class WatchSettings:
    """Configuration for watch mode."""

    debounce_ms: int = field(default_factory=lambda: _get_default("watch", "debounce_ms", 300))


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    verbose: bool = field(default_factory=_get_default_verbose)

    def validate(self) -> None:
        """Raise ConfigError for an unknown log level."""
        if str(self.level).upper() not in LOG_LEVELS:
            raise ConfigError(
                f"Unknown log level '{self.level}', expected one of {', '.join(LOG_LEVELS)}"
            )


@dataclass
class BuildCacheConfig:
    """Main configuration class for buildcache."""

    cache: CacheSettings = field(default_factory=CacheSettings)
    watch: WatchSettings = field(default_factory=WatchSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "BuildCacheConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            BuildCacheConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ConfigError: If the file format is unsupported or the content is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif path.suffix == ".json":
                data = json.loads(content) if content.strip() else {}
            else:
                raise ConfigError(f"Unsupported config file format: {path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "BuildCacheConfig":
        """Create BuildCacheConfig from a dictionary."""
        config = cls()

        try:
            if "cache" in data:
                config.cache = CacheSettings(**data["cache"])
            if "watch" in data:
                config.watch = WatchSettings(**data["watch"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        return config

    def apply_env_overrides(self) -> "BuildCacheConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: BUILDCACHE_<SECTION>_<KEY>
        Examples:
            - BUILDCACHE_CACHE_DIRECTORY
            - BUILDCACHE_CACHE_MAX_ENTRIES
            - BUILDCACHE_WATCH_DEBOUNCE_MS
            - BUILDCACHE_LOGGING_VERBOSE

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Cache config
            "BUILDCACHE_CACHE_DIRECTORY": ("cache", "cache_directory", str),
            "BUILDCACHE_CACHE_MANIFEST_NAME": ("cache", "manifest_name", str),
            "BUILDCACHE_CACHE_MAX_ENTRIES": ("cache", "max_entries", int),
            "BUILDCACHE_CACHE_HASH_ALGORITHM": ("cache", "hash_algorithm", str),
            # Watch config
            "BUILDCACHE_WATCH_DEBOUNCE_MS": ("watch", "debounce_ms", int),
            # Logging config
            "BUILDCACHE_LOGGING_LEVEL": ("logging", "level", str),
            "BUILDCACHE_LOGGING_VERBOSE": ("logging", "verbose", _parse_bool),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                try:
                    setattr(section_obj, key, converter(value))
                except ValueError as e:
                    raise ConfigError(f"Invalid value for {env_var}: {value!r}") from e

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> BuildCacheConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        Validated BuildCacheConfig instance

    Raises:
        ConfigError: If the resulting configuration is invalid
    """
    if config_path:
        config = BuildCacheConfig.from_file(config_path)
    else:
        config = BuildCacheConfig()

    if apply_env:
        config.apply_env_overrides()

    config.cache.validate()
    config.logging.validate()
    return config
