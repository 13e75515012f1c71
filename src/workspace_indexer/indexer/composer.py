"""
Composer manifest reader.

Only the package names declared under ``require`` and ``require-dev`` are
used; versions and every other manifest key are ignored.
"""

import json

import structlog

from .filesystem import file_system_for

logger = structlog.get_logger()

COMPOSER_JSON = "composer.json"
_DEPENDENCY_KEYS = ("require", "require-dev")


def parse_composer_packages(text: str) -> list[str]:
    """Return the declared package names of a composer.json document.

    Raises:
        ValueError: if ``text`` is not valid JSON
    """
    manifest = json.loads(text)
    if not isinstance(manifest, dict):
        return []

    packages: list[str] = []
    for key in _DEPENDENCY_KEYS:
        section = manifest.get(key)
        if isinstance(section, dict):
            packages.extend(name for name in section if isinstance(name, str))
    return packages


def read_composer_packages(composer_json_uri: str) -> list[str]:
    """Read the package names declared by the manifest at ``composer_json_uri``.

    Never raises: a missing manifest means no dependencies; an unreadable or
    malformed one is logged and also means no dependencies.
    """
    provider = file_system_for(composer_json_uri)
    try:
        data = provider.read_file(composer_json_uri)
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.warning("composer.read_failed", uri=composer_json_uri, error=str(e))
        return []

    if data is None:
        return []

    try:
        return parse_composer_packages(data.decode("utf-8"))
    except ValueError as e:
        logger.warning("composer.parse_failed", uri=composer_json_uri, error=str(e))
        return []
