"""
Index coordinator: keeps the engine's document set in step with the workspace.

Full runs (``index_workspace``) diff a fresh discovery against the engine's
known documents and submit only what is new or changed, then forget what
disappeared. Incremental updates (``index_files``/``forget_files``) handle
file-watch events.

Everything runs on one event loop. Each walk yields to the loop before every
file so interactive requests are served during long scans, and that yield is
the only place a cancellation is noticed. Full and incremental walks share a
single writer lock, so the engine is never fed from two walks at once.
"""

import asyncio
import time
from dataclasses import asdict

import structlog

from ..config.schema import IndexerSettings
from .cancellation import CancellationToken
from .discovery import FileDiscovery
from .engine import SymbolEngine
from .filesystem import get_document
from .models import FileInfo, IndexResult
from .workspace import Workspace

logger = structlog.get_logger()

PHP_FILE_GLOB = "*.php"


def effective_associations(configured: list[str]) -> list[str]:
    """Configured associations plus ``*.php``, without duplicates, order kept."""
    return list(dict.fromkeys([*configured, PHP_FILE_GLOB]))


class IndexCoordinator:
    """Owns the single active indexing run of the process.

    Construct once and share the instance with every event handler.

    Usage:
        coordinator = IndexCoordinator(engine, workspace, settings)
        result = await coordinator.index_workspace()
        await coordinator.index_files(changed_uris)
    """

    def __init__(
        self,
        engine: SymbolEngine,
        workspace: Workspace,
        settings: IndexerSettings | None = None,
        discovery: FileDiscovery | None = None,
    ) -> None:
        self.engine = engine
        self.workspace = workspace
        self.settings = settings or IndexerSettings()
        self.discovery = discovery or FileDiscovery()
        self._active: CancellationToken | None = None
        self._writer = asyncio.Lock()
        self.log = logger.bind(component="indexer")

    @property
    def is_indexing(self) -> bool:
        return self._active is not None

    def associations(self) -> list[str]:
        return effective_associations(self.settings.files.associations)

    async def index_workspace(self, restart_if_running: bool = False) -> IndexResult:
        """Bring the engine up to date with every workspace folder.

        Args:
            restart_if_running: If a run is already active, cancel it and
                start over. If False, return at once with ``was_cancelled``
                set and all counters at zero.

        Returns:
            IndexResult of this run.
        """
        if self._active is not None:
            if not restart_if_running:
                self.log.debug("indexer.run_declined", reason="already_running")
                return IndexResult(was_cancelled=True)
            self.cancel_indexing()

        token = CancellationToken()
        self._active = token
        try:
            async with self._writer:
                result = await self._run(token)
        finally:
            if self._active is token:
                self._active = None

        self.log.info("indexer.run_complete", **asdict(result))
        return result

    def cancel_indexing(self) -> None:
        """Stop the active run at its next file boundary. No-op when idle."""
        if self._active is None:
            return
        self._active.cancel()
        self._active = None
        self.log.info("indexer.run_cancelled")

    async def index_files(self, uris: list[str]) -> IndexResult:
        """Index files reported by file-watch events.

        Only uris that belong to a workspace folder under the current rules
        are read and submitted. There is no diff against the known documents
        and no cancellation; bursts are expected to be small.
        """
        start = time.monotonic()
        result = IndexResult()
        files_config = self.settings.files

        async with self._writer:
            files = self.discovery.filter_known(
                uris,
                self.workspace.folders,
                self.associations(),
                files_config.exclude,
                self.settings.indexer.use_composer_json,
            )
            result.total_file_count = len(files)

            for info in files:
                await asyncio.sleep(0)
                symbols = self._submit(info, files_config.max_size)
                if symbols is not None:
                    result.indexed_file_count += 1
                    result.symbol_count += symbols

        result.elapsed_ms = (time.monotonic() - start) * 1000
        self.log.debug("indexer.files_indexed", requested=len(uris), **asdict(result))
        return result

    async def forget_files(self, uris: list[str]) -> int:
        """Make the engine forget each uri (deleted files). Returns the count."""
        async with self._writer:
            await self._forget(uris)
        self.log.debug("indexer.files_forgotten", count=len(uris))
        return len(uris)

    async def _run(self, token: CancellationToken) -> IndexResult:
        start = time.monotonic()
        result = IndexResult()
        files_config = self.settings.files

        if token.cancelled:
            # Cancelled while waiting for the previous run to let go
            result.was_cancelled = True
            return result

        snapshot = self.engine.known_documents()
        remaining_known = set(snapshot.documents)

        files = self.discovery.discover_all(
            self.workspace.folders,
            self.associations(),
            files_config.exclude,
            self.settings.indexer.use_composer_json,
        )
        result.total_file_count = len(files)

        for info in files:
            await asyncio.sleep(0)
            if token.cancelled:
                break

            if info.uri in remaining_known:
                remaining_known.discard(info.uri)
                if info.modified_ms < snapshot.timestamp_ms:
                    # Unchanged since the engine last saw it
                    continue

            symbols = self._submit(info, files_config.max_size)
            if symbols is not None:
                result.indexed_file_count += 1
                result.symbol_count += symbols

        if token.cancelled:
            result.was_cancelled = True
        elif remaining_known:
            await self._forget(sorted(remaining_known))
            result.forgotten_file_count = len(remaining_known)

        result.elapsed_ms = (time.monotonic() - start) * 1000
        return result

    def _submit(self, info: FileInfo, max_size: int) -> int | None:
        """Read one file and hand it to the engine.

        Returns:
            Symbols discovered, or None if the file was skipped (too large,
            unreadable or on an unsupported scheme).
        """
        if info.size_bytes > max_size:
            self.log.warning(
                "indexer.file_too_large",
                uri=info.uri,
                size=info.size_bytes,
                max_size=max_size,
            )
            return None

        document = get_document(info.uri)
        if document is None:
            return None
        return self.engine.discover_symbols(document)

    async def _forget(self, uris: list[str]) -> None:
        for uri in uris:
            await asyncio.sleep(0)
            self.engine.forget(uri)
