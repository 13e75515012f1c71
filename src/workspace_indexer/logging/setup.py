"""
Structured logging setup.

Two independent pipelines:
1. File (JSON): only if config.file is set. Captures everything (DEBUG+).
2. Console (stderr): level driven by config.level and the -v counter.

Modules log through structlog with dotted event names and key/value context:

    logger = structlog.get_logger()
    logger.warning("indexer.file_too_large", uri=uri, size=size)
"""

import logging
import sys
from pathlib import Path

import structlog

from ..config.schema import LoggingConfig

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(config: LoggingConfig, quiet: bool = False) -> None:
    """Configure structlog and the stdlib handlers behind it.

    Args:
        config: Logging configuration (level, file, verbose)
        quiet: If True, no console output at all (the file pipeline still runs)
    """
    logging.root.handlers.clear()
    structlog.reset_defaults()

    # Root logger captures everything; handlers filter by level
    logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[])

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    # ── Pipeline 1: JSON file ─────────────────────────────────────────────
    file_handler = None
    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(file_path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(file_handler)

    # ── Pipeline 2: console ───────────────────────────────────────────────
    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_console_level(config))
        if file_handler:
            console_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
                    foreign_pre_chain=shared_processors,
                )
            )
        logging.root.addHandler(console_handler)
    elif not file_handler:
        # Keeps logging.lastResort from printing warnings
        logging.root.addHandler(logging.NullHandler())

    if file_handler:
        # Dual pipeline: each handler renders through its own ProcessorFormatter
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _console_level(config: LoggingConfig) -> int:
    """Console level: the configured level, lowered by each -v.

    No -v   -> config.level (default INFO)
    -v      -> INFO at most
    -vv+    -> DEBUG
    """
    level = _LEVELS[config.level]
    if config.verbose >= 2:
        return logging.DEBUG
    if config.verbose == 1:
        return min(level, logging.INFO)
    return level
