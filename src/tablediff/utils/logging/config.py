"""
Logging configuration for tablediff.

Console records go to stderr because stdout carries the report. An optional
rotating file handler keeps a copy of the run log.
"""

import logging
import logging.handlers
import os
import sys

from .formatters import ConsoleFormatter, JSONFormatter

APP_NAME = "tablediff"

# Driver and client libraries that log per request at INFO
QUIET_LIBRARIES = ("urllib3", "requests", "opentelemetry", "pymysql")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _formatter(json_format: bool, app_name: str, console: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter(include_timestamp=True, include_hostname=True, app_name=app_name)
    if console:
        return ConsoleFormatter(use_colors=True)
    return logging.Formatter(fmt=PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = APP_NAME,
    max_bytes: int = 100 * 1024 * 1024,  # 100MB
    backup_count: int = 5,
) -> None:
    """
    Replace the root logger's handlers for a tablediff run

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Path to a rotating log file (None disables file logging)
        console_output: Log to stderr
        json_format: One JSON object per record on every handler
        app_name: Value of the ``app`` field in JSON records
        max_bytes: Log file size that triggers rotation
        backup_count: Rotated log files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handlers: list[logging.Handler] = []
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter(json_format, app_name, console=True))
        handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter(json_format, app_name, console=False))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging initialized: level={level}, file={log_file or 'none'}, "
        f"console={console_output}, json={json_format}"
    )


def shutdown_logging() -> None:
    """Flush, close and detach every root handler (releases the log file)."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def configure_from_env() -> None:
    """
    Configure logging from environment variables

    Environment variables:
        LOG_LEVEL: Log level (default: INFO)
        LOG_FILE: Log file path (default: none)
        LOG_JSON: Use JSON format (default: false)
        LOG_CONSOLE: Enable console output (default: true)
    """
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        console_output=_env_flag("LOG_CONSOLE", True),
        json_format=_env_flag("LOG_JSON", False),
    )
