"""
Tests for the composer.json reader.
"""

import json
from pathlib import Path

import pytest

from workspace_indexer.indexer.composer import parse_composer_packages, read_composer_packages
from workspace_indexer.indexer.filesystem import path_to_uri


class TestParseComposerPackages:
    def test_require_and_require_dev(self):
        text = json.dumps({
            "name": "acme/app",
            "require": {"php": ">=8.1", "acme/log": "^1.0"},
            "require-dev": {"phpunit/phpunit": "^10"},
        })
        assert parse_composer_packages(text) == ["php", "acme/log", "phpunit/phpunit"]

    def test_no_dependencies(self):
        assert parse_composer_packages('{"name": "acme/app"}') == []

    def test_non_object_sections_ignored(self):
        assert parse_composer_packages('{"require": ["acme/log"]}') == []

    def test_non_object_document(self):
        assert parse_composer_packages("[1, 2]") == []

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parse_composer_packages("{not json")


class TestReadComposerPackages:
    def test_reads_manifest(self, tmp_path: Path):
        manifest = tmp_path / "composer.json"
        manifest.write_text('{"require": {"acme/log": "*"}}', encoding="utf-8")
        assert read_composer_packages(path_to_uri(str(manifest))) == ["acme/log"]

    def test_missing_manifest(self, tmp_path: Path):
        assert read_composer_packages(path_to_uri(str(tmp_path / "composer.json"))) == []

    def test_malformed_manifest(self, tmp_path: Path):
        manifest = tmp_path / "composer.json"
        manifest.write_text("{oops", encoding="utf-8")
        assert read_composer_packages(path_to_uri(str(manifest))) == []

    def test_unsupported_scheme(self):
        assert read_composer_packages("ssh://host/app/composer.json") == []
