"""
Configuration module for workspace-indexer.

Exports the main components for convenient imports.
"""

from .loader import load_config
from .schema import FilesConfig, IndexerConfig, IndexerSettings, LoggingConfig

__all__ = [
    "load_config",
    "IndexerSettings",
    "FilesConfig",
    "IndexerConfig",
    "LoggingConfig",
]
