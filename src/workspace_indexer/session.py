"""
WorkspaceSession - glue between editor events and the indexer.

Translates the lifecycle of a language-server session into indexer calls:

- initialize: register the workspace folders and open the workspace cache
- initialized: index the whole workspace
- configuration change: swap the settings used by the next runs
- watched files changed: forget deleted files, re-index the others
- workspace folders changed: update the folders, restart the full index
- shutdown: stop any running index

The wire protocol itself lives elsewhere; handlers call these methods with
plain values.
"""

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from .config.schema import FilesConfig, IndexerConfig, IndexerSettings
from .indexer import (
    Cache,
    Folder,
    IndexCoordinator,
    IndexResult,
    SymbolEngine,
    Workspace,
    workspace_cache_key,
)

logger = structlog.get_logger()


class FileChangeType(IntEnum):
    """Kinds of file-watch events (numbering of the protocol)."""

    CREATED = 1
    CHANGED = 2
    DELETED = 3


@dataclass(frozen=True)
class FileChange:
    uri: str
    type: FileChangeType


class WorkspaceSession:
    """One editor session: folders, settings, coordinator and cache.

    Usage:
        session = WorkspaceSession(engine, settings)
        cache = session.initialize(workspace_folders=folders)
        engine.use_cache(cache)          # engine-side, may be None
        await session.initialized()
    """

    def __init__(self, engine: SymbolEngine, settings: IndexerSettings | None = None) -> None:
        self.engine = engine
        self.settings = settings or IndexerSettings()
        self.workspace = Workspace()
        self.coordinator = IndexCoordinator(engine, self.workspace, self.settings)
        self.cache: Cache | None = None

    def initialize(
        self,
        workspace_folders: list[Folder] | None = None,
        root_uri: str | None = None,
        storage_path: Path | str | None = None,
        clear_cache: bool = False,
    ) -> Cache | None:
        """Register folders and open the cache of this workspace.

        ``workspace_folders`` wins over ``root_uri``, which is only used by
        clients without multi-root support. With ``clear_cache`` any cache
        left by a previous session is removed and the session runs uncached.

        Returns:
            The cache to hand to the engine, or None.
        """
        if workspace_folders:
            for folder in workspace_folders:
                self.workspace.add_folder(folder)
        elif root_uri:
            self.workspace.add_folder(Folder(uri=root_uri, name=root_uri))

        if storage_path:
            self._apply_settings(self.settings.model_copy(update={"storage_path": Path(storage_path)}))

        if self.workspace.has_folders():
            cache_dir = self.cache_dir()
            if clear_cache or self.settings.clear_cache:
                Cache(cache_dir).dispose()
            else:
                self.cache = Cache.create(cache_dir)

        logger.info(
            "session.initialized",
            folders=len(self.workspace.folders),
            cached=self.cache is not None,
        )
        return self.cache

    def cache_dir(self) -> Path:
        """Directory of this workspace's cache under the storage path."""
        return self.settings.storage_path / workspace_cache_key(self.workspace.folders)

    async def initialized(self) -> IndexResult:
        """Index the workspace once the client is ready."""
        return await self.coordinator.index_workspace()

    def change_configuration(self, settings: dict[str, Any] | None) -> bool:
        """Apply client settings (the ``files``/``indexer`` sections).

        Invalid settings are logged and ignored; the previous ones stay.

        Returns:
            True if the settings were applied.
        """
        if not settings:
            return False

        try:
            files = FilesConfig.model_validate(settings.get("files") or {})
            indexer = IndexerConfig.model_validate(settings.get("indexer") or {})
        except ValidationError as e:
            logger.warning("session.invalid_settings", error=str(e))
            return False

        self._apply_settings(self.settings.model_copy(update={"files": files, "indexer": indexer}))
        self.engine.set_config(settings)
        return True

    async def change_watched_files(self, changes: list[FileChange]) -> IndexResult:
        """Forget deleted files, then index created and changed ones.

        Returns:
            Result of the incremental index, with ``forgotten_file_count``
            set to the number of deletions.
        """
        to_forget: list[str] = []
        to_index: list[str] = []
        for change in changes:
            if change.type == FileChangeType.DELETED:
                to_forget.append(change.uri)
            else:
                to_index.append(change.uri)

        forgotten = await self.coordinator.forget_files(to_forget) if to_forget else 0
        result = await self.coordinator.index_files(to_index) if to_index else IndexResult()
        result.forgotten_file_count = forgotten
        return result

    async def change_workspace_folders(
        self,
        added: list[Folder],
        removed: list[Folder],
    ) -> IndexResult:
        """Update the folder set and re-index, restarting any running index."""
        for folder in added:
            self.workspace.add_folder(folder)
        for folder in removed:
            self.workspace.remove_folder(folder)
        return await self.coordinator.index_workspace(restart_if_running=True)

    def shutdown(self) -> None:
        self.coordinator.cancel_indexing()
        logger.info("session.shutdown")

    def _apply_settings(self, settings: IndexerSettings) -> None:
        self.settings = settings
        self.coordinator.settings = settings
