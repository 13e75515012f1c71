"""
Configuration loader with deep merge.

Precedence (lowest to highest):
1. Defaults (defined in the Pydantic schemas)
2. YAML file
3. Environment variables
4. CLI arguments

The merge is recursive so that every key survives at every level.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from .schema import IndexerSettings


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dictionary merge.

    Returns:
        New dictionary; override wins on conflicting leaves.

    Example:
        >>> deep_merge({"files": {"maxSize": 1, "exclude": []}}, {"files": {"maxSize": 2}})
        {'files': {'maxSize': 2, 'exclude': []}}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Returns:
        The configuration dictionary, or an empty dict when no path is given

    Raises:
        FileNotFoundError: if ``config_path`` does not exist
    """
    if not config_path:
        return {}

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def load_env_overrides() -> dict[str, Any]:
    """Load overrides from environment variables.

    Supported variables:
        WSINDEX_STORAGE_PATH: overrides storagePath
        WSINDEX_MAX_FILE_SIZE: overrides files.maxSize
        WSINDEX_USE_COMPOSER: overrides indexer.useComposerJson ("0"/"false" disables)
        WSINDEX_LOG_LEVEL: overrides logging.level
    """
    overrides: dict[str, Any] = {}

    if storage_path := os.environ.get("WSINDEX_STORAGE_PATH"):
        overrides["storagePath"] = storage_path

    if max_size := os.environ.get("WSINDEX_MAX_FILE_SIZE"):
        overrides.setdefault("files", {})["maxSize"] = max_size

    if use_composer := os.environ.get("WSINDEX_USE_COMPOSER"):
        overrides.setdefault("indexer", {})["useComposerJson"] = (
            use_composer.lower() not in ("0", "false", "no", "off")
        )

    if log_level := os.environ.get("WSINDEX_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level.lower()

    return overrides


def apply_cli_overrides(config_dict: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Apply overrides coming from CLI arguments."""
    overrides: dict[str, Any] = {}

    if cli_args.get("storage_path"):
        overrides["storagePath"] = cli_args["storage_path"]

    if cli_args.get("exclude"):
        overrides.setdefault("files", {})["exclude"] = list(cli_args["exclude"])

    if cli_args.get("associations"):
        overrides.setdefault("files", {})["associations"] = list(cli_args["associations"])

    if cli_args.get("max_size") is not None:
        overrides.setdefault("files", {})["maxSize"] = cli_args["max_size"]

    if cli_args.get("no_composer"):
        overrides.setdefault("indexer", {})["useComposerJson"] = False

    if cli_args.get("log_file"):
        overrides.setdefault("logging", {})["file"] = cli_args["log_file"]

    if cli_args.get("verbose") is not None:
        overrides.setdefault("logging", {})["verbose"] = cli_args["verbose"]

    return deep_merge(config_dict, overrides)


def load_config(
    config_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> IndexerSettings:
    """Load and validate the complete configuration.

    Raises:
        FileNotFoundError: if config_path does not exist
        ValidationError: if the merged configuration is invalid
    """
    cli_args = cli_args or {}

    yaml_config = load_yaml_config(config_path)
    merged = deep_merge(yaml_config, load_env_overrides())
    merged = apply_cli_overrides(merged, cli_args)

    # Pydantic fills in the defaults
    return IndexerSettings(**merged)
