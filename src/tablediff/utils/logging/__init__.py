"""
Structured logging configuration for tablediff

Provides JSON-formatted logging with contextual information (table, side,
chunk) for integration with log aggregation systems.

Usage:
    from tablediff.utils.logging import ContextLogger, setup_logging

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/tablediff/run.log")

    logger = ContextLogger(__name__, table="accounts")
    logger.info("Chunk digest mismatch", chunk="#1 [10000, 19999]")
"""

from .config import configure_from_env, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
