"""
Include/exclude pattern matching for cache candidates.

Glob syntax:
- `**` matches any sequence of path segments, including none
- `*` matches any run of characters within a single segment
- every other character is matched literally
"""

import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable

logger = logging.getLogger(__name__)

DEFAULT_PATTERN_CACHE_SIZE = 100


@dataclass(frozen=True)
class PatternRule:
    """
    A compiled glob pattern.

    Attributes:
        raw: Original glob string
        compiled: Anchored regular expression equivalent to raw
    """

    raw: str
    compiled: re.Pattern

    @classmethod
    def compile(cls, raw: str) -> "PatternRule":
        """Compile a glob string. Pure: the same raw always gives an equivalent rule."""
        return cls(raw=raw, compiled=re.compile(f"^{glob_to_regex(raw)}$"))

    def matches(self, path: str) -> bool:
        return self.compiled.fullmatch(path) is not None


def glob_to_regex(raw: str) -> str:
    """
    Translate a glob pattern into an (unanchored) regular expression source.

    Args:
        raw: Glob pattern

    Returns:
        Regular expression source string
    """
    parts: list[str] = []
    i = 0
    while i < len(raw):
        if raw.startswith("**/", i):
            # Zero or more whole segments
            parts.append("(?:.*/)?")
            i += 3
        elif raw.startswith("**", i):
            parts.append(".*")
            i += 2
        elif raw[i] == "*":
            parts.append("[^/]*")
            i += 1
        else:
            parts.append(re.escape(raw[i]))
            i += 1
    return "".join(parts)


def normalize_path(path: str | PurePath) -> str:
    """Render a path with forward slashes for matching."""
    return str(path).replace("\\", "/")


class PatternCache:
    """
    Bounded cache of compiled patterns keyed by raw string.

    When full, the oldest inserted pattern is dropped (FIFO). Pattern sets
    are small and static within a project, so recency tracking is not needed.
    """

    def __init__(self, capacity: int = DEFAULT_PATTERN_CACHE_SIZE):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._rules: dict[str, PatternRule] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, raw: object) -> bool:
        return raw in self._rules

    def get(self, raw: str) -> PatternRule:
        """Return the compiled rule for raw, compiling and caching on first use."""
        rule = self._rules.get(raw)
        if rule is not None:
            return rule

        rule = PatternRule.compile(raw)
        if len(self._rules) >= self._capacity:
            oldest = next(iter(self._rules))
            del self._rules[oldest]
            logger.debug(f"Pattern cache full, dropped: {oldest}")
        self._rules[raw] = rule
        return rule

    def clear(self) -> None:
        self._rules.clear()


class PatternMatcher:
    """
    Decides whether a path is subject to caching.

    Exclude patterns are checked first and always win. Otherwise a path is
    cached only if some include pattern matches; with no match at all the
    path is not cached.
    """

    def __init__(
        self,
        include: Iterable[str],
        exclude: Iterable[str] = (),
        cache: PatternCache | None = None,
    ):
        """
        Initialize the matcher.

        Args:
            include: Glob patterns that opt paths into caching
            exclude: Glob patterns that opt paths out, overriding includes
            cache: Compiled pattern cache. If None, a private one is created.
        """
        self._include = list(include)
        self._exclude = list(exclude)
        self._cache = cache if cache is not None else PatternCache()

    @property
    def include(self) -> list[str]:
        return list(self._include)

    @property
    def exclude(self) -> list[str]:
        return list(self._exclude)

    @property
    def cache(self) -> PatternCache:
        return self._cache

    def matches(self, path: str | PurePath) -> bool:
        """Return True if path should be cached."""
        candidate = normalize_path(path)

        for raw in self._exclude:
            if self._cache.get(raw).matches(candidate):
                return False

        for raw in self._include:
            if self._cache.get(raw).matches(candidate):
                return True

        return False

    should_cache = matches
