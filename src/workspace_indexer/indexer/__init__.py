"""
Indexer module: workspace discovery, index coordination and the engine cache.
"""

from .cache import Cache, CacheFormatError, workspace_cache_key
from .cancellation import CancellationToken
from .coordinator import IndexCoordinator
from .discovery import FileDiscovery
from .engine import SymbolEngine
from .models import FileInfo, Folder, IndexResult, KnownDocuments, TextDocument
from .workspace import Workspace

__all__ = [
    "Cache",
    "CacheFormatError",
    "CancellationToken",
    "FileDiscovery",
    "FileInfo",
    "Folder",
    "IndexCoordinator",
    "IndexResult",
    "KnownDocuments",
    "SymbolEngine",
    "TextDocument",
    "Workspace",
    "workspace_cache_key",
]
