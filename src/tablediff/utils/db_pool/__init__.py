"""
Database connection pooling for PostgreSQL, SQL Server, MySQL and SQLite.

Provides thread-safe connection pools with health checks, per-query
deadlines, metrics, and recycling of stale connections. Driver modules are
imported only when a pool of that type is created, so a missing ODBC
runtime does not break PostgreSQL-only runs.
"""

import logging
from typing import TYPE_CHECKING, Any

from ..database_types import DatabaseType
from .base import (
    BaseConnectionPool,
    ConnectionPoolError,
    PoolClosedError,
    PooledConnection,
    PoolExhaustedError,
)

if TYPE_CHECKING:
    from ...config import DatabaseConfig

logger = logging.getLogger(__name__)


def create_pool(
    config: "DatabaseConfig",
    pool_name: str,
    max_size: int = 4,
    **pool_kwargs: Any,
) -> BaseConnectionPool:
    """
    Create the connection pool matching a parsed connection URL.

    Args:
        config: Parsed connection settings for one side
        pool_name: Name used in metrics and logs (e.g. "source")
        max_size: Maximum number of connections (one per worker)
        **pool_kwargs: Additional pool configuration (acquire_timeout, max_idle_time, ...)

    Returns:
        A pool for the configured engine

    Raises:
        ValueError: If the engine is not supported
    """
    db_type = config.db_type
    logger.info(f"Creating {db_type.value} connection pool '{pool_name}'")

    common: dict[str, Any] = dict(pool_name=pool_name, max_size=max_size, **pool_kwargs)

    if db_type is DatabaseType.POSTGRESQL:
        from .postgres import PostgresConnectionPool

        return PostgresConnectionPool(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
            options=config.options,
            **common,
        )

    if db_type is DatabaseType.MYSQL:
        from .mysql import MySQLConnectionPool

        return MySQLConnectionPool(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
            options=config.options,
            **common,
        )

    if db_type is DatabaseType.SQLSERVER:
        from .sqlserver import DEFAULT_DRIVER, SQLServerConnectionPool

        options = dict(config.options)
        driver = options.pop("driver", DEFAULT_DRIVER)
        return SQLServerConnectionPool(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
            driver=driver,
            options=options,
            **common,
        )

    if db_type is DatabaseType.SQLITE:
        from .sqlite import SQLiteConnectionPool

        return SQLiteConnectionPool(database=config.database, **common)

    raise ValueError(f"Unsupported database type: {db_type}")


__all__ = [
    "BaseConnectionPool",
    "PooledConnection",
    "ConnectionPoolError",
    "PoolExhaustedError",
    "PoolClosedError",
    "create_pool",
]
