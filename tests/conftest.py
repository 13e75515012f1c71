"""
Shared fixtures: an in-memory symbol engine and workspace builders.
"""

import logging
import time
from pathlib import Path

import pytest
import structlog

from workspace_indexer.indexer import Folder, KnownDocuments, TextDocument
from workspace_indexer.indexer.filesystem import path_to_uri


class FakeEngine:
    """Records what the coordinator feeds it. One symbol per non-empty line."""

    def __init__(self) -> None:
        self.documents: dict[str, str] = {}
        self.discovered: list[str] = []
        self.forgotten: list[str] = []
        self.configs: list[dict] = []
        self.calls: list[tuple[str, str]] = []
        self.timestamp_ms = 0.0

    def known_documents(self) -> KnownDocuments:
        return KnownDocuments(documents=frozenset(self.documents), timestamp_ms=self.timestamp_ms)

    def discover_symbols(self, document: TextDocument) -> int:
        self.documents[document.uri] = document.text
        self.discovered.append(document.uri)
        self.calls.append(("discover", document.uri))
        return sum(1 for line in document.text.splitlines() if line.strip())

    def forget(self, uri: str) -> None:
        self.documents.pop(uri, None)
        self.forgotten.append(uri)
        self.calls.append(("forget", uri))

    def set_config(self, settings: dict) -> None:
        self.configs.append(settings)

    def mark_synced(self) -> None:
        """Pretend every known document was observed after the last write."""
        self.timestamp_ms = time.time() * 1000 + 60_000


def write(path: Path, content: str = "<?php\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def uri_of(path: Path) -> str:
    return path_to_uri(str(path))


def folder_of(path: Path) -> Folder:
    return Folder(uri=uri_of(path) + "/", name=path.name)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo configure_logging calls made by a test."""
    yield
    for handler in logging.root.handlers:
        handler.close()
    logging.root.handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path.resolve() / "project"
    root.mkdir()
    return root
