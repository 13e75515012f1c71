"""
Tests for the wsindex command line.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import folder_of, uri_of, write

from workspace_indexer.cli import main
from workspace_indexer.indexer import workspace_cache_key


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("WSINDEX_STORAGE_PATH", "WSINDEX_MAX_FILE_SIZE", "WSINDEX_USE_COMPOSER", "WSINDEX_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestDiscover:
    def test_json_output(self, runner: CliRunner, project: Path):
        a = write(project / "a.php", "<?php\n")
        write(project / "notes.txt")

        result = runner.invoke(main, ["discover", str(project), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [entry["uri"] for entry in payload] == [uri_of(a)]
        assert payload[0]["size_bytes"] == 6
        assert payload[0]["too_large"] is False

    def test_max_size_flag(self, runner: CliRunner, project: Path):
        write(project / "big.php", "x" * 100)

        result = runner.invoke(main, ["discover", str(project), "--json", "--max-size", "10"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)[0]["too_large"] is True

    def test_exclude_and_association(self, runner: CliRunner, project: Path):
        inc = write(project / "lib" / "legacy.inc")
        write(project / "build" / "gen.php")

        result = runner.invoke(
            main,
            ["discover", str(project), "--json", "-a", "*.inc", "-e", "build/**"],
        )

        assert result.exit_code == 0, result.output
        assert [entry["uri"] for entry in json.loads(result.stdout)] == [uri_of(inc)]

    def test_text_output(self, runner: CliRunner, project: Path):
        a = write(project / "a.php")

        result = runner.invoke(main, ["discover", str(project)])

        assert result.exit_code == 0, result.output
        assert uri_of(a) in result.stdout

    def test_invalid_config(self, runner: CliRunner, project: Path, tmp_path: Path):
        config = tmp_path / "bad.yaml"
        config.write_text("files:\n  max_size: lots\n", encoding="utf-8")

        result = runner.invoke(main, ["discover", str(project), "-c", str(config)])

        assert result.exit_code == 3


class TestCacheCommands:
    def test_cache_key(self, runner: CliRunner, project: Path):
        result = runner.invoke(main, ["cache-key", str(project)])

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == workspace_cache_key([folder_of(project)])

    def test_cache_clear(self, runner: CliRunner, project: Path, tmp_path: Path):
        storage = tmp_path / "storage"
        cache_dir = storage / workspace_cache_key([folder_of(project)])
        write(cache_dir / "symbols.json", "[]")

        result = runner.invoke(main, ["cache-clear", str(project), "--storage-path", str(storage)])

        assert result.exit_code == 0, result.output
        assert not cache_dir.exists()

    def test_cache_clear_missing_is_ok(self, runner: CliRunner, project: Path, tmp_path: Path):
        result = runner.invoke(
            main, ["cache-clear", str(project), "--storage-path", str(tmp_path / "none")]
        )
        assert result.exit_code == 0, result.output


class TestValidateConfig:
    def test_valid(self, runner: CliRunner, tmp_path: Path):
        config = tmp_path / "wsindex.yaml"
        config.write_text("files:\n  associations: ['*.inc']\n", encoding="utf-8")

        result = runner.invoke(main, ["validate-config", "-c", str(config)])

        assert result.exit_code == 0, result.output
        assert "Valid configuration" in result.stdout
        assert "*.inc" in result.stdout

    def test_invalid(self, runner: CliRunner, tmp_path: Path):
        config = tmp_path / "wsindex.yaml"
        config.write_text("logging:\n  level: loud\n", encoding="utf-8")

        result = runner.invoke(main, ["validate-config", "-c", str(config)])

        assert result.exit_code == 3
