"""
Command line interface for workspace-indexer using Click.

Lets you inspect from a terminal what the indexer would see: which files a
workspace discovers, which cache directory it uses, and clear that cache.
"""

import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from .config import IndexerSettings, load_config
from .indexer import Cache, FileDiscovery, Folder, workspace_cache_key
from .indexer.coordinator import effective_associations
from .indexer.filesystem import path_to_uri
from .indexer.workspace import normalize_folder_uri
from .logging import configure_logging

# Exit codes
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 3

_VERSION = "0.3.0"


def _folders_from_paths(paths: tuple[str, ...]) -> list[Folder]:
    folders = []
    for raw in paths:
        path = Path(raw).resolve()
        folders.append(Folder(uri=normalize_folder_uri(path_to_uri(str(path))), name=path.name))
    return folders


def _load_settings(config: Path | None, cli_args: dict[str, Any], quiet: bool = False) -> IndexerSettings:
    """Load settings and configure logging, exiting with EXIT_CONFIG_ERROR on failure."""
    try:
        settings = load_config(config_path=config, cli_args=cli_args)
    except (FileNotFoundError, ValidationError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    configure_logging(settings.logging, quiet=quiet)
    return settings


@click.group()
@click.version_option(version=_VERSION, prog_name="wsindex")
def main() -> None:
    """wsindex - workspace discovery and cache tooling for the PHP indexer."""
    pass


@main.command()
@click.argument("folders", nargs=-1, required=True, type=click.Path(exists=True, file_okay=False))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to the YAML configuration file",
)
@click.option("-a", "--association", "associations", multiple=True, help="Extra file glob to index (repeatable)")
@click.option("-e", "--exclude", multiple=True, help="Glob to exclude (repeatable)")
@click.option("--no-composer", is_flag=True, help="Search all of vendor/ like any other directory")
@click.option("--max-size", type=int, default=None, help="Maximum file size in bytes")
@click.option("--json", "json_output", is_flag=True, help="Print the result as JSON")
@click.option("-v", "--verbose", count=True, help="More log output (-v, -vv)")
def discover(
    folders: tuple[str, ...],
    config: Path | None,
    associations: tuple[str, ...],
    exclude: tuple[str, ...],
    no_composer: bool,
    max_size: int | None,
    json_output: bool,
    verbose: int,
) -> None:
    """List the files the indexer would discover in FOLDERS."""
    settings = _load_settings(
        config,
        {
            "associations": associations,
            "exclude": exclude,
            "no_composer": no_composer,
            "max_size": max_size,
            "verbose": verbose,
        },
        quiet=json_output and not verbose,
    )

    files = FileDiscovery().discover_all(
        _folders_from_paths(folders),
        effective_associations(settings.files.associations),
        settings.files.exclude,
        settings.indexer.use_composer_json,
    )
    max_size = settings.files.max_size

    if json_output:
        payload = [{**asdict(f), "too_large": f.size_bytes > max_size} for f in files]
        click.echo(json.dumps(payload, indent=2))
        return

    for f in files:
        marker = "  (over max size)" if f.size_bytes > max_size else ""
        click.echo(f"{f.size_bytes:>10}  {f.uri}{marker}")
    oversize = sum(1 for f in files if f.size_bytes > max_size)
    click.echo(f"\n{len(files)} file(s), {oversize} over {max_size} bytes", err=True)


@main.command("cache-key")
@click.argument("folders", nargs=-1, required=True, type=click.Path(file_okay=False))
def cache_key(folders: tuple[str, ...]) -> None:
    """Print the cache key of the workspace made of FOLDERS (in order)."""
    click.echo(workspace_cache_key(_folders_from_paths(folders)))


@main.command("cache-clear")
@click.argument("folders", nargs=-1, required=True, type=click.Path(file_okay=False))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to the YAML configuration file",
)
@click.option("--storage-path", type=click.Path(file_okay=False), default=None, help="Cache storage directory")
def cache_clear(folders: tuple[str, ...], config: Path | None, storage_path: str | None) -> None:
    """Remove the cache directory of the workspace made of FOLDERS."""
    settings = _load_settings(config, {"storage_path": storage_path}, quiet=True)
    cache_dir = settings.storage_path / workspace_cache_key(_folders_from_paths(folders))

    try:
        Cache(cache_dir).dispose()
    except OSError as e:
        click.echo(f"Could not remove {cache_dir}: {e}", err=True)
        sys.exit(EXIT_FAILED)
    click.echo(f"Removed {cache_dir}")


@main.command("validate-config")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to the configuration file to validate",
)
def validate_config(config: Path | None) -> None:
    """Validate a YAML configuration file."""
    settings = _load_settings(config, {}, quiet=True)
    click.echo("Valid configuration")
    click.echo(f"  Associations: {', '.join(settings.files.associations) or '(default)'}")
    click.echo(f"  Excludes: {len(settings.files.exclude)}")
    click.echo(f"  Max file size: {settings.files.max_size}")
    click.echo(f"  Composer integration: {'on' if settings.indexer.use_composer_json else 'off'}")
    click.echo(f"  Storage path: {settings.storage_path}")
