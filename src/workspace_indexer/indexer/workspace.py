"""
Registry of the workspace folders being indexed.
"""

import structlog

from .models import Folder

logger = structlog.get_logger()


def normalize_folder_uri(uri: str) -> str:
    """Folder uris always end with '/'."""
    return uri if uri.endswith("/") else uri + "/"


class Workspace:
    """Open workspace folders, keyed by uri.

    Adding a folder twice keeps a single entry; the latest name wins.
    """

    def __init__(self) -> None:
        self._folders: dict[str, Folder] = {}

    def add_folder(self, folder: Folder) -> Folder:
        normalized = Folder(uri=normalize_folder_uri(folder.uri), name=folder.name)
        self._folders[normalized.uri] = normalized
        logger.debug("workspace.folder_added", uri=normalized.uri)
        return normalized

    def remove_folder(self, folder: Folder) -> None:
        if self._folders.pop(normalize_folder_uri(folder.uri), None) is not None:
            logger.debug("workspace.folder_removed", uri=folder.uri)

    @property
    def folders(self) -> list[Folder]:
        return list(self._folders.values())

    def has_folders(self) -> bool:
        return bool(self._folders)
