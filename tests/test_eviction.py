"""
Tests for EvictionPolicy: stale purge and capacity bound.
"""

from buildcache.core.eviction import EvictionPolicy
from buildcache.core.models import FileState, Manifest
from tests.support.cache_test_utils import key, write_file


def _state(path: str) -> FileState:
    return FileState(path=path, hash="abc", size=1, mtime=1.0)


def _manifest_for(paths: list[str]) -> Manifest:
    manifest = Manifest()
    for path in paths:
        manifest.set_entry(_state(path))
    manifest.dirty = False
    return manifest


def test_stale_entries_are_removed(tmp_path):
    kept = key(write_file(tmp_path / "a.ts", "a"))
    gone = key(tmp_path / "b.ts")
    manifest = _manifest_for([kept, gone])

    report = EvictionPolicy().evict(manifest)

    assert report.stale == [gone]
    assert report.overflow == []
    assert list(manifest.entries) == [kept]
    assert manifest.dirty


def test_capacity_drops_oldest_entries(tmp_path):
    paths = [key(write_file(tmp_path / f"f{i}.ts", str(i))) for i in range(5)]
    manifest = _manifest_for(paths)

    report = EvictionPolicy(max_entries=3).evict(manifest)

    assert report.overflow == paths[:2]
    assert list(manifest.entries) == paths[2:]
    assert report.total == 2


def test_stale_removal_runs_before_capacity(tmp_path):
    live = [key(write_file(tmp_path / f"f{i}.ts", str(i))) for i in range(3)]
    stale = [key(tmp_path / "gone1.ts"), key(tmp_path / "gone2.ts")]
    manifest = _manifest_for(stale + live)

    report = EvictionPolicy(max_entries=3).evict(manifest)

    assert sorted(report.stale) == sorted(stale)
    assert report.overflow == []
    assert list(manifest.entries) == live


def test_non_positive_cap_disables_limit(tmp_path):
    paths = [key(write_file(tmp_path / f"f{i}.ts", str(i))) for i in range(4)]
    manifest = _manifest_for(paths)

    report = EvictionPolicy(max_entries=0).evict(manifest)

    assert report.total == 0
    assert len(manifest) == 4
    assert not manifest.dirty


def test_nothing_to_evict_leaves_manifest_clean(tmp_path):
    manifest = _manifest_for([key(write_file(tmp_path / "a.ts", "a"))])

    report = EvictionPolicy(max_entries=10).evict(manifest)

    assert report.total == 0
    assert not manifest.dirty
