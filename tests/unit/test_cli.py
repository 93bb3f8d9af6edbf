"""
Integration tests for CLI commands.

Tests the basic functionality of CLI commands and error handling.
"""

import json

import yaml
from typer.testing import CliRunner

from buildcache.cli import app
from tests.support.cache_test_utils import write_file

runner = CliRunner()


def _project(tmp_path):
    root = tmp_path.resolve()
    write_file(root / "src" / "a.ts", "export const a = 1;\n")
    write_file(root / "node_modules" / "dep" / "index.js", "module.exports = {};\n")
    return root


def _manifest(root):
    return json.loads((root / ".buildcache" / "manifest.json").read_text(encoding="utf-8"))


class TestCLIHelp:
    """Test CLI help and usage information."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("check", "status", "prune", "clear", "watch"):
            assert command in result.stdout

    def test_check_help(self):
        result = runner.invoke(app, ["check", "--help"])

        assert result.exit_code == 0
        assert "--root" in result.stdout
        assert "--verbose" in result.stdout

    def test_watch_help(self):
        result = runner.invoke(app, ["watch", "--help"])

        assert result.exit_code == 0
        assert "--debounce" in result.stdout


class TestCheckCommand:
    def test_cold_then_warm(self, tmp_path):
        root = _project(tmp_path)

        first = runner.invoke(app, ["check", str(root / "src"), "--root", str(root)])
        second = runner.invoke(app, ["check", str(root / "src"), "--root", str(root)])

        assert first.exit_code == 0, first.stdout
        assert "Build pass complete" in first.stdout
        assert "miss" in first.stdout
        assert second.exit_code == 0, second.stdout
        assert "hit" in second.stdout

        entries = _manifest(root)["entries"]
        assert len(entries) == 1
        assert next(iter(entries)).endswith("src/a.ts")

    def test_excluded_directories_are_not_recorded(self, tmp_path):
        root = _project(tmp_path)

        result = runner.invoke(app, ["check", str(root), "--root", str(root)])

        assert result.exit_code == 0, result.stdout
        entries = _manifest(root)["entries"]
        assert len(entries) == 1
        assert not any("node_modules" in path for path in entries)

    def test_config_file_is_used(self, tmp_path):
        root = _project(tmp_path)
        write_file(root / "src" / "a.test.ts", "test('a', () => {});\n")
        config = tmp_path / "buildcache.yaml"
        settings = {
            "cache_directory": "cache-out",
            "include": ["**/*.ts"],
            "exclude": ["**/*.test.ts"],
        }
        config.write_text(yaml.safe_dump({"cache": settings}), encoding="utf-8")

        result = runner.invoke(
            app, ["check", str(root / "src"), "--root", str(root), "--config", str(config)]
        )

        assert result.exit_code == 0, result.stdout
        manifest_path = root / "cache-out" / "manifest.json"
        entries = json.loads(manifest_path.read_text(encoding="utf-8"))["entries"]
        assert [path.rsplit("/", 1)[-1] for path in entries] == ["a.ts"]

    def test_verbose_check(self, tmp_path):
        root = _project(tmp_path)

        result = runner.invoke(app, ["check", str(root / "src"), "--root", str(root), "-v"])

        assert result.exit_code == 0, result.stdout
        assert "Build pass complete" in result.stdout

    def test_invalid_log_level(self, tmp_path, monkeypatch):
        root = _project(tmp_path)
        monkeypatch.setenv("BUILDCACHE_LOGGING_LEVEL", "loud")

        result = runner.invoke(app, ["check", str(root), "--root", str(root)])

        assert result.exit_code == 1
        assert "Unknown log level" in result.stdout

    def test_missing_config_file(self, tmp_path):
        root = _project(tmp_path)

        result = runner.invoke(
            app, ["check", str(root), "--root", str(root), "--config", str(tmp_path / "none.yaml")]
        )

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_root_must_be_a_directory(self, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path), "--root", str(tmp_path / "nope")])

        assert result.exit_code == 1
        assert "Root is not a directory" in result.stdout


class TestMaintenanceCommands:
    def test_status_reports_entries(self, tmp_path):
        root = _project(tmp_path)
        runner.invoke(app, ["check", str(root / "src"), "--root", str(root)])

        result = runner.invoke(app, ["status", "--root", str(root)])

        assert result.exit_code == 0, result.stdout
        assert "Build cache status" in result.stdout
        assert "2.0.0" in result.stdout

    def test_prune_removes_deleted_files(self, tmp_path):
        root = _project(tmp_path)
        runner.invoke(app, ["check", str(root / "src"), "--root", str(root)])
        (root / "src" / "a.ts").unlink()

        result = runner.invoke(app, ["prune", "--root", str(root)])

        assert result.exit_code == 0, result.stdout
        assert "Removed 1 stale" in result.stdout
        assert _manifest(root)["entries"] == {}

    def test_clear(self, tmp_path):
        root = _project(tmp_path)
        runner.invoke(app, ["check", str(root / "src"), "--root", str(root)])

        first = runner.invoke(app, ["clear", "--root", str(root)])
        second = runner.invoke(app, ["clear", "--root", str(root)])

        assert first.exit_code == 0
        assert "Removed" in first.stdout
        assert not (root / ".buildcache" / "manifest.json").exists()
        assert "No cache manifest to remove" in second.stdout
