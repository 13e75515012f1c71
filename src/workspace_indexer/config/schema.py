"""
Pydantic models for the indexer configuration.

The ``files`` and ``indexer`` sections mirror the settings an editor client
sends (camelCase keys such as ``maxSize`` are accepted alongside their
snake_case names). Unknown client keys are ignored; internal sections are
strict.
"""

import tempfile
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

PHP_LANGUAGE_ID = "php"


class FilesConfig(BaseModel):
    """Which files belong to the project."""

    associations: list[str] = Field(
        default_factory=list,
        description="Extra file globs treated as PHP (e.g. ['*.inc']). '*.php' is always implied.",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Globs excluded from discovery, relative to each workspace folder.",
    )
    max_size: int = Field(
        default=1_000_000,
        ge=0,
        alias="maxSize",
        description="Files larger than this (bytes) are never indexed.",
    )

    model_config = {"extra": "ignore", "populate_by_name": True}

    @field_validator("associations", mode="before")
    @classmethod
    def _associations_from_mapping(cls, value: Any) -> Any:
        """Accept the editor's ``{glob: languageId}`` form; keep PHP globs."""
        if isinstance(value, dict):
            return [glob for glob, language in value.items() if language == PHP_LANGUAGE_ID]
        return value

    @field_validator("exclude", mode="before")
    @classmethod
    def _exclude_from_mapping(cls, value: Any) -> Any:
        """Accept the editor's ``{glob: true|false}`` form; keep enabled globs."""
        if isinstance(value, dict):
            return [glob for glob, enabled in value.items() if enabled is True]
        return value


class IndexerConfig(BaseModel):
    """Indexer behaviour."""

    use_composer_json: bool = Field(
        default=True,
        alias="useComposerJson",
        description=(
            "If True, vendor/ is searched only for the packages declared in "
            "composer.json (require and require-dev)."
        ),
    )

    model_config = {"extra": "ignore", "populate_by_name": True}


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "warn", "error"] = "info"
    file: Path | None = None
    verbose: int = 0

    model_config = {"extra": "forbid"}


class IndexerSettings(BaseModel):
    """Complete configuration of the indexer."""

    files: FilesConfig = Field(default_factory=FilesConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage_path: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        alias="storagePath",
        description="Directory holding one cache directory per workspace.",
    )
    clear_cache: bool = Field(
        default=False,
        alias="clearCache",
        description="If True, start without a cache (the engine re-indexes everything).",
    )

    model_config = {"extra": "ignore", "populate_by_name": True}
