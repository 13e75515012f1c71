"""
On-disk cache for engine state.

Each key maps to one file, ``<key>.json``, holding a single JSON array of
records. Records are written and read one at a time, so a large record set
is never serialised into a single string or parsed in one go.

The cache imposes no schema on records. Keys are used verbatim as file
names; callers must pick keys that are legal and collision-free (see
workspace_cache_key).

Typical usage:
    cache = Cache.create(storage_path / workspace_cache_key(folders))
    if cache is not None:
        cache.put("symbols", records)
        records = cache.get("symbols")
"""

import contextlib
import json
import re
import shutil
from pathlib import Path
from typing import IO, Any, Iterable, Iterator

import structlog

from .models import Folder

logger = structlog.get_logger()

CACHE_FILE_SUFFIX = ".json"
READ_CHUNK_SIZE = 64 * 1024
_WHITESPACE = " \t\n\r"
_NUMBER_TAIL = re.compile(r"[0-9.eE+-]*\Z")


class CacheFormatError(ValueError):
    """Raised when a cache file is not a well-formed JSON array."""


def hash32(text: str) -> int:
    """Signed 32-bit string hash (``h = h * 31 + unit`` over UTF-16 code units)."""
    data = text.encode("utf-16-le")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = ((value << 5) - value + unit) & 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def workspace_cache_key(folders: Iterable[Folder]) -> str:
    """Cache key of a workspace: hex hash of its concatenated folder uris."""
    return format(abs(hash32("".join(folder.uri for folder in folders))), "x")


class _JsonArrayReader:
    """Incremental parser yielding the elements of a top-level JSON array.

    A record that does not fit the buffer is decoded again after each read,
    from its first character. Reads double in size while one record is
    pending, so a large record costs a bounded number of decode attempts.
    A malformed record is only reported once the rest of the file has been
    read, since until then it may still be a truncated valid one.
    """

    def __init__(self, stream: IO[str], chunk_size: int = READ_CHUNK_SIZE) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._decoder = json.JSONDecoder()
        self._buf = ""
        self._pos = 0

    def __iter__(self) -> Iterator[Any]:
        if self._peek() != "[":
            raise CacheFormatError("cache file does not start with '['")
        self._pos += 1

        if self._peek() == "]":
            self._pos += 1
        else:
            while True:
                yield self._value()
                ch = self._peek()
                self._pos += 1
                if ch == ",":
                    continue
                if ch == "]":
                    break
                found = repr(ch) if ch else "end of file"
                raise CacheFormatError(f"expected ',' or ']' but found {found}")

        if self._peek():
            raise CacheFormatError("unexpected data after the closing ']'")

    def _fill(self, size: int | None = None) -> bool:
        chunk = self._stream.read(size or self._chunk_size)
        if not chunk:
            return False
        self._buf = self._buf[self._pos:] + chunk
        self._pos = 0
        return True

    def _peek(self) -> str:
        """Skip whitespace and return the next character ('' at end of file)."""
        while True:
            while self._pos < len(self._buf) and self._buf[self._pos] in _WHITESPACE:
                self._pos += 1
            if self._pos < len(self._buf):
                return self._buf[self._pos]
            if not self._fill():
                return ""

    def _value(self) -> Any:
        if not self._peek():
            raise CacheFormatError("unexpected end of file, expected a record")
        size = self._chunk_size
        while True:
            try:
                value, end = self._decoder.raw_decode(self._buf, self._pos)
            except json.JSONDecodeError as e:
                size *= 2
                if self._fill(size):
                    continue
                raise CacheFormatError(f"invalid record: {e.msg}") from e
            # "1." or "2.5E+" at the buffer edge decode as a shorter number
            if _NUMBER_TAIL.match(self._buf, end):
                size *= 2
                if self._fill(size):
                    continue
            self._pos = end
            return value


class Cache:
    """JSON-array-per-key cache rooted at an existing directory.

    Create instances with Cache.create(), which makes sure the directory
    exists and degrades to None when it cannot be created.
    """

    def __init__(self, directory: Path) -> None:
        """Initialize the cache.

        Args:
            directory: Cache directory. Must already exist.
        """
        self.directory = Path(directory)
        self._log = logger.bind(component="cache", dir=str(self.directory))

    @classmethod
    def create(cls, directory: Path | str) -> "Cache | None":
        """Open a cache in ``directory``, creating it if missing.

        Returns:
            The cache, or None (with a warning) if the directory cannot be
            created. Callers then run uncached.
        """
        path = Path(directory)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("cache.dir_create_failed", path=str(path), error=str(e))
            return None
        return cls(path)

    def put(self, key: str, records: Iterable[Any]) -> None:
        """Write ``records`` under ``key`` as one JSON array, replacing any previous value.

        The array is streamed to a temporary file next to the target and
        renamed into place once closed, so a failed write leaves the previous
        value intact.

        Raises:
            OSError: on any I/O failure
            TypeError, ValueError: if a record is not JSON-serializable
        """
        target = self._path(key)
        partial = target.with_name(target.name + ".tmp")
        try:
            with open(partial, "w", encoding="utf-8", newline="") as f:
                f.write("[")
                for n, record in enumerate(records):
                    if n:
                        f.write(",")
                    f.write(json.dumps(record, ensure_ascii=False, allow_nan=False))
                f.write("]")
                f.flush()
            partial.replace(target)
        except (OSError, TypeError, ValueError) as e:
            self._log.error("cache.write_failed", key=key, error=str(e))
            with contextlib.suppress(OSError):
                partial.unlink(missing_ok=True)
            raise
        self._log.debug("cache.put", key=key)

    def get(self, key: str) -> list[Any]:
        """Read the records stored under ``key``, in the order they were put.

        Returns:
            The records, or an empty list if ``key`` was never written.

        Raises:
            OSError: on any I/O failure other than a missing file
            ValueError: if the file is not a valid JSON array (CacheFormatError)
                or not valid UTF-8
        """
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                records = list(_JsonArrayReader(f))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            self._log.error("cache.read_failed", key=key, error=str(e))
            raise
        self._log.debug("cache.get", key=key, records=len(records))
        return records

    def delete(self, key: str) -> None:
        """Remove the file of ``key``.

        Raises:
            FileNotFoundError: if ``key`` was never written
            OSError: on any other failure
        """
        try:
            self._path(key).unlink()
        except OSError as e:
            self._log.error("cache.delete_failed", key=key, error=str(e))
            raise

    def dispose(self) -> None:
        """Remove the cache directory and everything in it.

        A directory that is already gone is not an error.
        """
        try:
            shutil.rmtree(self.directory)
        except FileNotFoundError:
            return
        except OSError as e:
            self._log.error("cache.dispose_failed", error=str(e))
            raise
        self._log.info("cache.disposed")

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}{CACHE_FILE_SUFFIX}"
