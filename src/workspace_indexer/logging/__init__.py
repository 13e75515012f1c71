"""
Logging module - structured logging built on structlog.
"""

from .setup import configure_logging

__all__ = [
    "configure_logging",
]
