"""
Custom logging wrappers.

Provides ContextLogger for attaching table/side context to log messages.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Logger wrapper that adds contextual information to all log messages

    Usage:
        logger = ContextLogger("tablediff.orchestrator", table="accounts")
        logger.info("Chunk digest mismatch", chunk="[0, 9999]")
        # Output includes both table and chunk
    """

    def __init__(self, name: str, **context):
        """
        Initialize context logger

        Args:
            name: Logger name
            **context: Contextual key-value pairs to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.context = context

    def _log(
        self,
        level: int,
        msg: str,
        *args,
        exc_info=None,
        **kwargs
    ) -> None:
        """
        Internal log method that merges context

        Args:
            level: Log level
            msg: Log message
            *args: Message format args
            exc_info: Exception info
            **kwargs: Additional context
        """
        if not self.logger.isEnabledFor(level):
            return

        extra = {**self.context, **kwargs}

        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra=extra,
            stacklevel=3,
        )

    def debug(self, msg: str, *args, **kwargs) -> None:
        """Log debug message with context"""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        """Log info message with context"""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        """Log warning message with context"""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        """Log error message with context"""
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def bind(self, **context) -> "ContextLogger":
        """
        Return a child logger with additional context

        The parent's context is left untouched, so workers can bind
        per-chunk context without racing on shared state.
        """
        return ContextLogger(self.logger.name, **{**self.context, **context})

    def get_context(self) -> dict[str, Any]:
        """
        Get current context

        Returns:
            Dictionary of context key-value pairs
        """
        return self.context.copy()
