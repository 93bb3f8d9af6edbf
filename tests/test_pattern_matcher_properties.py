"""
Property-based tests for include/exclude pattern matching.

**Feature: build-cache, Property: Pattern Precedence**
**Feature: build-cache, Property: Glob Segment Semantics**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from buildcache.core.pattern_matcher import (
    PatternCache,
    PatternMatcher,
    PatternRule,
    glob_to_regex,
    normalize_path,
)

SEGMENTS = ["src", "lib", "app", "components", "utils", "deep", "a", "b"]
NAMES = ["index", "main", "button", "store", "api", "foo"]

segment_lists = st.lists(st.sampled_from(SEGMENTS), min_size=0, max_size=5)
file_names = st.sampled_from(NAMES)


def _join(dirs: list[str], name: str) -> str:
    return "/".join([*dirs, name])


@given(dirs=segment_lists, name=file_names)
@settings(max_examples=100)
def test_double_star_matches_any_depth(dirs: list[str], name: str):
    """
    `**/*.ts` matches a .ts file at any depth, including the root.
    """
    rule = PatternRule.compile("**/*.ts")

    assert rule.matches(_join(dirs, f"{name}.ts"))
    assert not rule.matches(_join(dirs, f"{name}.tsx"))


@given(dirs=st.lists(st.sampled_from(SEGMENTS), min_size=1, max_size=4), name=file_names)
@settings(max_examples=100)
def test_single_star_stays_within_segment(dirs: list[str], name: str):
    """
    `src/*.ts` only matches files directly inside src.
    """
    rule = PatternRule.compile("src/*.ts")

    assert rule.matches(f"src/{name}.ts")
    assert not rule.matches(_join(["src", *dirs], f"{name}.ts"))


@given(dirs=segment_lists, name=file_names)
@settings(max_examples=100)
def test_exclude_always_wins(dirs: list[str], name: str):
    """
    **Feature: build-cache, Property: Pattern Precedence**

    A path matching both an include and an exclude pattern is never cached.
    """
    matcher = PatternMatcher(include=["**/*.ts", "**"], exclude=["**/*.test.ts"])

    assert not matcher.matches(_join(dirs, f"{name}.test.ts"))
    assert matcher.matches(_join(dirs, f"{name}.ts"))


@given(dirs=segment_lists, name=file_names)
@settings(max_examples=100)
def test_directory_exclude_matches_nested_files(dirs: list[str], name: str):
    """Everything below a node_modules directory is excluded at any depth."""
    matcher = PatternMatcher(include=["**/*.js"], exclude=["**/node_modules/**"])

    inside = _join([*dirs, "node_modules", "pkg"], f"{name}.js")
    assert not matcher.matches(inside)


class TestPatternMatcher:
    """Concrete matching cases."""

    def test_test_file_is_not_cached(self):
        matcher = PatternMatcher(include=["**/*.ts"], exclude=["**/*.test.ts"])

        assert matcher.should_cache("src/foo.ts")
        assert not matcher.should_cache("src/foo.test.ts")

    def test_no_include_match_means_not_cached(self):
        matcher = PatternMatcher(include=["**/*.ts"])

        assert not matcher.matches("styles/site.css")

    def test_empty_include_caches_nothing(self):
        matcher = PatternMatcher(include=[])

        assert not matcher.matches("src/a.ts")

    def test_bare_double_star_crosses_segments(self):
        rule = PatternRule.compile("src/**")

        assert rule.matches("src/a/b/c.ts")
        assert rule.matches("src/")

    def test_regex_metacharacters_are_literal(self):
        assert PatternRule.compile("a+b.ts").matches("a+b.ts")
        assert not PatternRule.compile("a+b.ts").matches("aab.ts")
        assert not PatternRule.compile("*.ts").matches("fileXts")

    def test_question_mark_is_literal(self):
        rule = PatternRule.compile("a?.ts")

        assert rule.matches("a?.ts")
        assert not rule.matches("ab.ts")

    def test_backslashes_are_normalized(self):
        matcher = PatternMatcher(include=["src/**/*.ts"])

        assert normalize_path("src\\lib\\a.ts") == "src/lib/a.ts"
        assert matcher.matches("src\\lib\\a.ts")

    def test_glob_to_regex_translation(self):
        assert glob_to_regex("**/*.ts") == r"(?:.*/)?[^/]*\.ts"
        assert glob_to_regex("src/**") == "src/.*"

    def test_compile_is_pure(self):
        first = PatternRule.compile("**/*.vue")
        second = PatternRule.compile("**/*.vue")

        assert first.compiled.pattern == second.compiled.pattern


class TestPatternCache:
    """Bounded compiled-pattern cache."""

    def test_reuses_compiled_rule(self):
        cache = PatternCache(capacity=4)

        first = cache.get("**/*.ts")
        second = cache.get("**/*.ts")

        assert first is second
        assert len(cache) == 1

    def test_evicts_oldest_when_full(self):
        cache = PatternCache(capacity=2)

        cache.get("a/*")
        cache.get("b/*")
        cache.get("c/*")

        assert len(cache) == 2
        assert "a/*" not in cache
        assert "b/*" in cache
        assert "c/*" in cache

    def test_evicted_pattern_still_matches(self):
        matcher = PatternMatcher(
            include=["**/*.ts", "**/*.js", "**/*.vue"],
            cache=PatternCache(capacity=1),
        )

        for _ in range(3):
            assert matcher.matches("src/a.ts")
            assert matcher.matches("src/b.vue")
        assert len(matcher.cache) == 1

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            PatternCache(capacity=0)

    def test_clear(self):
        cache = PatternCache()
        cache.get("**/*.ts")

        cache.clear()

        assert len(cache) == 0
