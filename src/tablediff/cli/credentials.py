"""
Connection URL and option resolution for the CLI.

Connection URLs come from Vault, from the command line, or from the
environment, in that order of precedence. Numeric options fall back to
environment variables before their defaults.
"""

import argparse
import logging
import os
from typing import Optional

import requests

from ..config import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_WORKERS, DiffConfig
from ..errors import ConfigError
from ..utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

SOURCE_URL_ENV = "TABLEDIFF_SOURCE_URL"
TARGET_URL_ENV = "TABLEDIFF_TARGET_URL"
CHUNK_SIZE_ENV = "TABLEDIFF_CHUNK_SIZE"
WORKERS_ENV = "TABLEDIFF_WORKERS"


def get_connection_urls(args: argparse.Namespace) -> tuple[str, str]:
    """
    Get source and target connection URLs from Vault or arguments/environment

    Args:
        args: Parsed command-line arguments

    Returns:
        Tuple of (source_url, target_url)

    Raises:
        ConfigError: If a URL is missing or Vault cannot be read
    """
    if args.use_vault:
        try:
            vault_client = VaultClient()
            source_url = vault_client.get_connection_url("source")
            target_url = vault_client.get_connection_url("target")
        except (ValueError, requests.RequestException) as e:
            raise ConfigError(f"Failed to fetch connection URLs from Vault: {e}") from e
        logger.info("Fetched connection URLs from Vault")
        return source_url, target_url

    source_url = args.source or os.getenv(SOURCE_URL_ENV)
    target_url = args.target or os.getenv(TARGET_URL_ENV)

    if not source_url:
        raise ConfigError(f"Source connection URL not provided (--source or ${SOURCE_URL_ENV})")
    if not target_url:
        raise ConfigError(f"Target connection URL not provided (--target or ${TARGET_URL_ENV})")

    return source_url, target_url


def _int_option(value: Optional[int], env_var: str, default: int) -> int:
    if value is not None:
        return value

    raw = os.getenv(env_var)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be an integer, got {raw!r}") from e


def get_table_names(args: argparse.Namespace) -> list[str]:
    """
    Tables named by --tables or --tables-file

    Raises:
        ConfigError: If neither yields a table name
    """
    if args.tables_file:
        try:
            with open(args.tables_file) as f:
                tables = [line.strip() for line in f if line.strip() and not line.startswith("#")]
        except OSError as e:
            raise ConfigError(f"Cannot read tables file {args.tables_file}: {e}") from e
    else:
        tables = [t.strip() for t in (args.tables or "").split(",") if t.strip()]

    if not tables:
        raise ConfigError("No tables given (--tables or --tables-file)")
    return tables


def build_diff_config(args: argparse.Namespace) -> DiffConfig:
    """
    Collect run options into a DiffConfig

    Raises:
        ConfigError: If an option is invalid
    """
    return DiffConfig(
        chunk_size=_int_option(args.chunk_size, CHUNK_SIZE_ENV, DEFAULT_CHUNK_SIZE),
        max_workers=_int_option(args.workers, WORKERS_ENV, DEFAULT_MAX_WORKERS),
        key_column=args.key_column,
        query_timeout=args.query_timeout or None,
        max_retries=args.max_retries,
        direction=args.direction,
        span_target_range=args.span_target_range,
        include=args.include or (),
        exclude=args.exclude or (),
    )
