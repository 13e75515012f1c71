"""
Tests for the on-disk cache.

Covers:
- put/get of nested records, ordering, replacement
- Missing keys, delete, dispose
- Cache.create when the directory cannot be made
- Corrupt files and the streaming reader across chunk boundaries
- hash32 / workspace_cache_key
"""

import io
import json
from pathlib import Path

import pytest

from workspace_indexer.indexer import Cache, CacheFormatError, Folder, workspace_cache_key
from workspace_indexer.indexer.cache import _JsonArrayReader, hash32


@pytest.fixture
def cache(tmp_path: Path) -> Cache:
    created = Cache.create(tmp_path / "cache")
    assert created is not None
    return created


class TestPutGet:
    def test_records_round_trip(self, cache: Cache):
        records = [
            {"uri": "file:///a.php", "symbols": [{"name": "A", "kind": 5, "range": [1, 0, 3, 1]}]},
            {"uri": "file:///b.php", "symbols": []},
            "plain string",
            42,
            None,
        ]

        cache.put("symbols", records)

        assert cache.get("symbols") == records

    def test_file_is_json_array(self, cache: Cache):
        cache.put("k", [1, {"a": "é"}])
        assert (cache.directory / "k.json").read_text(encoding="utf-8") == '[1,{"a": "é"}]'

    def test_empty_records(self, cache: Cache):
        cache.put("empty", [])
        assert cache.get("empty") == []

    def test_put_accepts_generator(self, cache: Cache):
        cache.put("gen", (n * n for n in range(5)))
        assert cache.get("gen") == [0, 1, 4, 9, 16]

    def test_put_replaces(self, cache: Cache):
        cache.put("k", [1, 2, 3])
        cache.put("k", ["x"])
        assert cache.get("k") == ["x"]

    def test_missing_key_is_empty(self, cache: Cache):
        assert cache.get("never-written") == []

    def test_unserializable_record_keeps_previous(self, cache: Cache):
        cache.put("k", [1])
        with pytest.raises(TypeError):
            cache.put("k", [2, object()])
        assert cache.get("k") == [1]
        assert not (cache.directory / "k.json.tmp").exists()

    def test_nan_rejected(self, cache: Cache):
        with pytest.raises(ValueError):
            cache.put("k", [float("nan")])


class TestCorruptFiles:
    def test_truncated_array(self, cache: Cache):
        (cache.directory / "bad.json").write_text('[{"a": 1}, {"b":', encoding="utf-8")
        with pytest.raises(CacheFormatError):
            cache.get("bad")

    def test_not_an_array(self, cache: Cache):
        (cache.directory / "obj.json").write_text('{"a": 1}', encoding="utf-8")
        with pytest.raises(CacheFormatError):
            cache.get("obj")

    def test_trailing_data(self, cache: Cache):
        (cache.directory / "tail.json").write_text("[1] [2]", encoding="utf-8")
        with pytest.raises(CacheFormatError):
            cache.get("tail")

    def test_format_error_is_value_error(self):
        assert issubclass(CacheFormatError, ValueError)


class TestStreamingReader:
    def test_tiny_chunks(self):
        text = ' [ {"name": "Alpha", "n": 12345}, "s,]", 6789 , [1, [2]] ] '
        reader = _JsonArrayReader(io.StringIO(text), chunk_size=3)
        assert list(reader) == [{"name": "Alpha", "n": 12345}, "s,]", 6789, [1, [2]]]

    def test_number_split_across_chunks(self):
        reader = _JsonArrayReader(io.StringIO("[123456789]"), chunk_size=4)
        assert list(reader) == [123456789]

    def test_floats_split_at_every_offset(self):
        for chunk_size in range(1, 9):
            for pad in range(chunk_size + 1):
                text = f'["{"x" * pad}", 1.5, 1e-07, -2.5E+10]'
                reader = _JsonArrayReader(io.StringIO(text), chunk_size=chunk_size)
                assert list(reader) == ["x" * pad, 1.5, 1e-07, -2.5e10], (chunk_size, pad)

    def test_float_at_default_chunk_edge(self, cache: Cache):
        for value in (1.5, 1e-07, -2.5e10):
            for pad in range(65525, 65535):
                cache.put("k", ["x" * pad, value])
                assert cache.get("k") == ["x" * pad, value]

    def test_large_record(self):
        record = {"symbols": [{"name": f"S{i}", "kind": i % 26} for i in range(5000)]}
        text = json.dumps([record, 2.75])
        assert list(_JsonArrayReader(io.StringIO(text), chunk_size=16)) == [record, 2.75]

    def test_empty_array_with_whitespace(self):
        assert list(_JsonArrayReader(io.StringIO("\n[ ]\n"), chunk_size=1)) == []

    def test_empty_input(self):
        with pytest.raises(CacheFormatError):
            list(_JsonArrayReader(io.StringIO("")))


class TestDeleteDispose:
    def test_delete(self, cache: Cache):
        cache.put("k", [1])
        cache.delete("k")
        assert cache.get("k") == []

    def test_delete_missing_raises(self, cache: Cache):
        with pytest.raises(FileNotFoundError):
            cache.delete("never-written")

    def test_dispose_removes_directory(self, cache: Cache):
        cache.put("a", [1])
        cache.put("b", [2])
        cache.dispose()
        assert not cache.directory.exists()

    def test_dispose_twice(self, cache: Cache):
        cache.dispose()
        cache.dispose()
        assert not cache.directory.exists()


class TestCreate:
    def test_creates_nested_directory(self, tmp_path: Path):
        created = Cache.create(tmp_path / "a" / "b")
        assert created is not None
        assert (tmp_path / "a" / "b").is_dir()

    def test_existing_directory(self, tmp_path: Path):
        assert Cache.create(tmp_path) is not None

    def test_uncreatable_directory(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        assert Cache.create(blocker / "cache") is None


class TestCacheKey:
    def test_hash32_known_values(self):
        assert hash32("") == 0
        assert hash32("a") == 97
        assert hash32("hello") == 99162322

    def test_hash32_wraps_to_signed(self):
        value = hash32("file:///home/dev/projects/some-long-workspace-name/")
        assert -(2**31) <= value < 2**31

    def test_hash32_utf16_units(self):
        # One astral character is two UTF-16 code units
        assert hash32("\U0001F600") == 0xD83D * 31 + 0xDE00

    def test_key_is_hex_of_abs_hash(self):
        folders = [Folder(uri="file:///a/"), Folder(uri="file:///b/")]
        assert workspace_cache_key(folders) == format(abs(hash32("file:///a/file:///b/")), "x")

    def test_key_depends_on_order(self):
        a, b = Folder(uri="file:///a/"), Folder(uri="file:///b/")
        assert workspace_cache_key([a, b]) != workspace_cache_key([b, a])

    def test_key_is_deterministic(self):
        folders = [Folder(uri="file:///srv/app/")]
        assert workspace_cache_key(folders) == workspace_cache_key(list(folders))
