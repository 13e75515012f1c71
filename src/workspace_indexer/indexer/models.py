"""
Data structures shared by discovery, the coordinator and the engine interface.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Folder:
    """A workspace root. ``uri`` always ends with '/' once registered."""

    uri: str
    name: str = ""


@dataclass(frozen=True)
class FileInfo:
    """Snapshot of one discovered file. Produced fresh on every discovery call."""

    uri: str
    modified_ms: int    # mtime in epoch milliseconds
    size_bytes: int


@dataclass(frozen=True)
class KnownDocuments:
    """Documents the engine currently holds, and when that was observed."""

    documents: frozenset[str] = field(default_factory=frozenset)
    timestamp_ms: float = 0.0


@dataclass(frozen=True)
class TextDocument:
    """Document handed to the engine for symbol discovery."""

    uri: str
    text: str
    language_id: str = "php"
    version: int = 0


@dataclass
class IndexResult:
    """Summary of one indexing run. Logged, never persisted."""

    total_file_count: int = 0
    indexed_file_count: int = 0
    forgotten_file_count: int = 0
    symbol_count: int = 0
    elapsed_ms: float = 0.0
    was_cancelled: bool = False
