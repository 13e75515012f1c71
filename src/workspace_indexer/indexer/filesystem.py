"""
Scheme-gated access to workspace files.

Only the local ``file`` scheme is backed by a real filesystem. Every other
scheme resolves to UnsupportedFileSystem, which answers with empty results
instead of raising, so callers never need to special-case remote folders.
"""

import os
import re
import sys
from pathlib import Path
from urllib.parse import quote, unquote

import structlog

from ..config.schema import PHP_LANGUAGE_ID
from .models import FileInfo, TextDocument

logger = structlog.get_logger()

FILE_SCHEME = "file"

_SLASH_DRIVE_PATTERN = re.compile(r"^/[a-zA-Z]:")
_DRIVE_PATTERN = re.compile(r"^[a-zA-Z]:")

# Characters kept as-is when encoding a path into a uri ('?' and '#' are
# encoded so the result always parses as a single path component)
_URI_SAFE = "/:@&=+$,;!*'()"


def is_windows() -> bool:
    return sys.platform == "win32"


def uri_scheme(uri: str) -> str:
    """Return the scheme of ``uri`` or an empty string if it has none."""
    colon = uri.find(":")
    return uri[:colon] if colon > -1 else ""


def path_to_uri(filepath: str) -> str:
    """Convert an absolute filesystem path to a ``file://`` uri.

    Handles POSIX paths, Windows drive paths (drive letter lowercased) and
    UNC paths (``//server/share``). Relative paths give an empty string.
    """
    if not filepath:
        return ""

    if is_windows():
        filepath = filepath.replace("\\", "/")

    authority = ""
    if filepath.startswith("//"):
        # UNC
        sep = filepath.find("/", 2)
        if sep < 0:
            authority = filepath[2:]
            path = "/"
        else:
            authority = filepath[2:sep]
            path = filepath[sep:]
            if _SLASH_DRIVE_PATTERN.match(path):
                path = path[0] + path[1].lower() + path[2:]
    elif filepath.startswith("/"):
        path = filepath
    elif _DRIVE_PATTERN.match(filepath):
        path = "/" + filepath[0].lower() + filepath[1:]
    else:
        return ""

    return "file://" + quote(authority, safe="") + quote(path, safe=_URI_SAFE)


def uri_to_path(uri: str) -> str:
    """Convert a ``file://`` uri back to a filesystem path.

    Returns an empty string for anything that is not a file uri.
    """
    filepath = unquote(uri)
    if not filepath.startswith("file://") or len(filepath) < 8:
        return ""

    filepath = filepath[7:]
    if _SLASH_DRIVE_PATTERN.match(filepath):
        filepath = filepath[1:]
    elif not filepath.startswith("/"):
        filepath = "//" + filepath

    if is_windows():
        filepath = filepath.replace("/", "\\")

    return filepath


def file_info_from_stat(uri: str, stat: os.stat_result) -> FileInfo:
    return FileInfo(
        uri=uri,
        modified_ms=stat.st_mtime_ns // 1_000_000,
        size_bytes=stat.st_size,
    )


class LocalFileSystem:
    """Files reachable through ``file://`` uris."""

    scheme = FILE_SCHEME

    def read_file(self, uri: str) -> bytes:
        """Read the whole file. Raises OSError on failure."""
        return Path(uri_to_path(uri)).read_bytes()

    def file_info(self, uri: str) -> FileInfo | None:
        """Stat the file behind ``uri``; None (with a warning) if that fails."""
        try:
            stat = os.stat(uri_to_path(uri))
        except OSError as e:
            logger.warning("filesystem.stat_failed", uri=uri, error=str(e))
            return None
        return file_info_from_stat(uri, stat)


class UnsupportedFileSystem:
    """Fallback for every scheme other than ``file``: nothing is readable."""

    scheme = ""

    def read_file(self, uri: str) -> None:
        return None

    def file_info(self, uri: str) -> None:
        return None


LOCAL_FILE_SYSTEM = LocalFileSystem()
UNSUPPORTED_FILE_SYSTEM = UnsupportedFileSystem()


def file_system_for(uri: str) -> LocalFileSystem | UnsupportedFileSystem:
    """Pick the provider for the scheme of ``uri``."""
    match uri_scheme(uri):
        case "file":
            return LOCAL_FILE_SYSTEM
        case _:
            return UNSUPPORTED_FILE_SYSTEM


def get_document(uri: str) -> TextDocument | None:
    """Read ``uri`` into a TextDocument ready for the engine.

    Unsupported schemes and unreadable files give None; read failures are
    logged as warnings.
    """
    provider = file_system_for(uri)
    try:
        data = provider.read_file(uri)
    except OSError as e:
        logger.warning("filesystem.read_failed", uri=uri, error=str(e))
        return None

    if data is None:
        return None

    return TextDocument(
        uri=uri,
        text=data.decode("utf-8", errors="replace"),
        language_id=PHP_LANGUAGE_ID,
        version=0,
    )
