"""
Narrow interface of the external symbol engine.

The coordinator only needs four calls from the engine; anything that
provides them (the real engine, a test double) can be plugged in.
"""

from typing import Any, Protocol, runtime_checkable

from .models import KnownDocuments, TextDocument


@runtime_checkable
class SymbolEngine(Protocol):
    """What the indexer consumes from the symbol engine."""

    def known_documents(self) -> KnownDocuments:
        """Uris currently indexed plus the instant the snapshot was taken."""
        ...

    def discover_symbols(self, document: TextDocument) -> int:
        """Index one document and return the number of symbols found."""
        ...

    def forget(self, uri: str) -> None:
        """Drop everything the engine knows about ``uri``."""
        ...

    def set_config(self, settings: dict[str, Any]) -> None:
        """Receive the client settings after a configuration change."""
        ...
