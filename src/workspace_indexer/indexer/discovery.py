"""
Workspace file discovery.

Finds the files of each workspace folder that should be indexed, in two
phases per folder:

1. Vendor phase (Composer integration only): the packages declared in
   ``composer.json`` are searched under ``vendor/``, each with its own glob,
   skipping their test directories. A package already claimed by an earlier
   folder in the same pass is not searched again.
2. Source phase: the folder itself, with ``vendor/**`` excluded when
   Composer integration is on, plus the caller's exclusions.

A failing phase is logged and contributes nothing; the other phase and the
other folders carry on.
"""

import os
import stat
from pathlib import Path
from typing import Callable, Iterable

import structlog

from .composer import COMPOSER_JSON, read_composer_packages
from .filesystem import (
    FILE_SCHEME,
    file_info_from_stat,
    file_system_for,
    path_to_uri,
    uri_scheme,
    uri_to_path,
)
from .globs import GlobSet
from .models import FileInfo, Folder

logger = structlog.get_logger()

VENDOR_DIR = "vendor"
VENDOR_EXCLUDE_GLOB = "vendor/**"
VENDOR_TESTS_GLOB = "**/{test,tests,Test,Tests}/**"


def is_file_glob(glob: str) -> bool:
    """A glob without '/' matches file names, not paths."""
    return "/" not in glob


def vendor_globs(
    packages: Iterable[str],
    associations: list[str],
    vendor_guard: set[str],
) -> list[str]:
    """Build one glob per package, relative to the vendor directory.

    Packages already in ``vendor_guard`` are skipped; the others are claimed
    by adding them to it.

    >>> vendor_globs(["acme/log"], ["*.php", "*.inc"], set())
    ['acme/log/**/{*.php,*.inc}']
    """
    claimed: list[str] = []
    for package in packages:
        if package in vendor_guard:
            continue
        vendor_guard.add(package)
        claimed.append(package)

    file_globs = [a for a in associations if is_file_glob(a)]
    if not file_globs:
        return []

    braced = "{" + ",".join(file_globs) + "}"
    return [f"{package}/**/{braced}" for package in claimed]


def _raise(error: OSError) -> None:
    raise error


def _is_ignored(rel_path: str, ignore: GlobSet) -> bool:
    """True if the path, or any directory above it, matches ``ignore``."""
    if ignore.match(rel_path):
        return True
    parts = rel_path.split("/")[:-1]
    for depth in range(1, len(parts) + 1):
        if ignore.match_dir("/".join(parts[:depth])):
            return True
    return False


def _relative_to(path: str, base: str) -> str | None:
    """'/'-separated path of ``path`` below ``base``, or None if outside."""
    path = path.replace("\\", "/")
    base = base.replace("\\", "/")
    if not base.endswith("/"):
        base += "/"
    if not path.startswith(base):
        return None
    return path[len(base):]


class FileDiscovery:
    """Finds indexable files across workspace folders."""

    def discover_all(
        self,
        folders: list[Folder],
        associations: list[str],
        exclude: list[str],
        use_composer: bool,
    ) -> list[FileInfo]:
        """Discover every candidate file of every folder.

        Vendor files come before source files within a folder, folders in the
        order given. A uri reported by more than one (nested) folder is kept
        once, at its first position.
        """
        vendor_guard: set[str] = set()
        seen: set[str] = set()
        files: list[FileInfo] = []

        for folder in folders:
            found = self._discover_in_folder(
                folder.uri, associations, exclude, use_composer, vendor_guard
            )
            for info in found:
                if info.uri not in seen:
                    seen.add(info.uri)
                    files.append(info)

        logger.debug("discovery.complete", folders=len(folders), files=len(files))
        return files

    def filter_known(
        self,
        uris: list[str],
        folders: list[Folder],
        associations: list[str],
        exclude: list[str],
        use_composer: bool,
    ) -> list[FileInfo]:
        """Keep the uris that discovery would have found, with fresh file info.

        Used for file-watch events: the uris are matched against the same
        rules as ``discover_all`` instead of walking the folders again. Files
        that cannot be stat-ed (already gone) are dropped.
        """
        vendor_guard: set[str] = set()
        matched: list[str] = []
        for folder in folders:
            matched.extend(
                self._filter_in_folder(
                    uris, folder.uri, associations, exclude, use_composer, vendor_guard
                )
            )

        seen: set[str] = set()
        files: list[FileInfo] = []
        for uri in matched:
            if uri in seen:
                continue
            seen.add(uri)
            info = file_system_for(uri).file_info(uri)
            if info is not None:
                files.append(info)
        return files

    # -- Per folder -------------------------------------------------------

    def _discover_in_folder(
        self,
        folder_uri: str,
        associations: list[str],
        exclude: list[str],
        use_composer: bool,
        vendor_guard: set[str],
    ) -> list[FileInfo]:
        if uri_scheme(folder_uri) != FILE_SCHEME:
            return []

        root = Path(uri_to_path(folder_uri))
        ignore = list(exclude)
        vendor_files: list[FileInfo] = []

        if use_composer:
            ignore.append(VENDOR_EXCLUDE_GLOB)
            packages = read_composer_packages(folder_uri.rstrip("/") + "/" + COMPOSER_JSON)
            if packages:
                vendor_files = self._vendor_phase(
                    root / VENDOR_DIR,
                    vendor_globs(packages, associations, vendor_guard),
                )

        source_files = self._source_phase(root, associations, ignore)
        return vendor_files + source_files

    def _vendor_phase(self, vendor_root: Path, globs: list[str]) -> list[FileInfo]:
        include = GlobSet(globs)
        if not include:
            return []
        ignore = GlobSet([VENDOR_TESTS_GLOB], ignore_case=True)

        files: list[FileInfo] = []
        try:
            for glob in globs:
                # glob is "<package>/**/{...}"; walk only that package
                package = glob.split("/**/", 1)[0]
                package_root = vendor_root / package
                if not package_root.is_dir():
                    continue
                files.extend(
                    self._walk(package_root, include.match, ignore, rel_prefix=package)
                )
        except OSError as e:
            logger.warning("discovery.vendor_search_failed", path=str(vendor_root), error=str(e))
            return []
        return files

    def _source_phase(
        self,
        root: Path,
        associations: list[str],
        ignore: list[str],
    ) -> list[FileInfo]:
        include = GlobSet(associations)
        if not include:
            return []
        try:
            return self._walk(root, include.match, GlobSet(ignore))
        except OSError as e:
            logger.warning("discovery.source_search_failed", path=str(root), error=str(e))
            return []

    def _filter_in_folder(
        self,
        uris: list[str],
        folder_uri: str,
        associations: list[str],
        exclude: list[str],
        use_composer: bool,
        vendor_guard: set[str],
    ) -> list[str]:
        if uri_scheme(folder_uri) != FILE_SCHEME:
            return []

        folder_path = uri_to_path(folder_uri)
        include = GlobSet(associations)
        ignore = GlobSet(exclude + ([VENDOR_EXCLUDE_GLOB] if use_composer else []))

        vendor_include = GlobSet([])
        vendor_ignore = GlobSet([VENDOR_TESTS_GLOB], ignore_case=True)
        if use_composer:
            packages = read_composer_packages(folder_uri.rstrip("/") + "/" + COMPOSER_JSON)
            vendor_include = GlobSet(vendor_globs(packages, associations, vendor_guard))

        matches: list[str] = []
        for uri in uris:
            if uri_scheme(uri) != FILE_SCHEME:
                continue
            rel = _relative_to(uri_to_path(uri), folder_path)
            if not rel:
                continue

            if include.match(rel) and not _is_ignored(rel, ignore):
                matches.append(uri)
            elif use_composer and rel.startswith(VENDOR_DIR + "/"):
                vendor_rel = rel[len(VENDOR_DIR) + 1:]
                if vendor_include.match(vendor_rel) and not _is_ignored(vendor_rel, vendor_ignore):
                    matches.append(uri)
        return matches

    # -- Walking ----------------------------------------------------------

    def _walk(
        self,
        root: Path,
        include: Callable[[str], bool],
        ignore: GlobSet,
        rel_prefix: str = "",
    ) -> list[FileInfo]:
        """Walk ``root`` and return the matching regular files, sorted per directory.

        Paths are matched relative to ``root`` (prefixed with ``rel_prefix``).
        Ignored directories are pruned. Errors listing a directory propagate
        as OSError; a file vanishing between listing and stat is skipped.
        """
        files: list[FileInfo] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            rel_dir = os.path.relpath(dirpath, root).replace(os.sep, "/")
            if rel_dir == ".":
                rel_dir = ""
            if rel_prefix:
                rel_dir = f"{rel_prefix}/{rel_dir}" if rel_dir else rel_prefix

            # Prune in place so os.walk never descends into ignored dirs
            dirnames[:] = sorted(
                d for d in dirnames
                if not ignore.match_dir(f"{rel_dir}/{d}" if rel_dir else d)
            )

            for filename in sorted(filenames):
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if ignore.match(rel_path) or not include(rel_path):
                    continue

                full_path = os.path.join(dirpath, filename)
                try:
                    st = os.stat(full_path)
                except FileNotFoundError:
                    continue
                if not stat.S_ISREG(st.st_mode):
                    continue

                files.append(file_info_from_stat(path_to_uri(full_path), st))
        return files
