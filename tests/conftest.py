"""
Pytest configuration and fixtures for tablediff tests.
Provides SQLite source/target databases and query executors over them.
"""

import sqlite3
from pathlib import Path
from typing import Callable, Iterable, Iterator

import pytest

from tablediff.compare.executor import QueryExecutor
from tablediff.config import DatabaseConfig, DiffConfig
from tablediff.orchestrator import ReconciliationOrchestrator
from tablediff.utils.db_pool import create_pool

ACCOUNTS_DDL = """
CREATE TABLE accounts (
    id INTEGER PRIMARY KEY,
    name TEXT,
    balance INTEGER,
    note TEXT
)
"""


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def account_rows(keys: Iterable[int]) -> list[tuple]:
    """Deterministic account rows for the given keys."""
    return [(key, f"customer-{key}", key * 10, None if key % 7 == 0 else "") for key in keys]


def write_table(
    path: Path,
    rows: Iterable[tuple],
    ddl: str = ACCOUNTS_DDL,
    table: str = "accounts",
) -> Path:
    """Create a SQLite file holding one table."""
    rows = list(rows)
    conn = sqlite3.connect(path)
    try:
        conn.execute(ddl)
        if rows:
            placeholders = ", ".join("?" for _ in rows[0])
            conn.executemany(f"INSERT INTO {table} VALUES ({placeholders})", rows)
        conn.commit()
    finally:
        conn.close()
    return path


def sqlite_url(path: Path) -> str:
    return f"sqlite:///{path}"


@pytest.fixture
def rows_for() -> Callable[[Iterable[int]], list[tuple]]:
    """The account_rows builder, for tests that tweak rows before writing them."""
    return account_rows


@pytest.fixture
def make_database(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a named SQLite file under the test's tmp_path."""

    def _make(name: str, rows: Iterable[tuple], ddl: str = ACCOUNTS_DDL, table: str = "accounts"):
        return write_table(tmp_path / f"{name}.db", rows, ddl=ddl, table=table)

    return _make


@pytest.fixture
def make_executor() -> Iterator[Callable[..., QueryExecutor]]:
    """Factory for QueryExecutors over SQLite files; pools are closed on teardown."""
    executors: list[QueryExecutor] = []

    def _make(side: str, path: Path, **kwargs) -> QueryExecutor:
        kwargs.setdefault("query_timeout", 30.0)
        kwargs.setdefault("retry_base_delay", 0.0)
        pool = create_pool(DatabaseConfig.from_url(sqlite_url(path)), pool_name=side, max_size=2)
        executor = QueryExecutor(side, pool, **kwargs)
        executors.append(executor)
        return executor

    yield _make

    for executor in executors:
        executor.close()


@pytest.fixture
def make_orchestrator() -> Iterator[Callable[..., ReconciliationOrchestrator]]:
    """Factory for orchestrators comparing two SQLite files."""
    orchestrators: list[ReconciliationOrchestrator] = []

    def _make(source: Path, target: Path, **options) -> ReconciliationOrchestrator:
        options.setdefault("retry_base_delay", 0.0)
        options.setdefault("query_timeout", 60.0)
        orchestrator = ReconciliationOrchestrator.from_config(
            DatabaseConfig.from_url(sqlite_url(source)),
            DatabaseConfig.from_url(sqlite_url(target)),
            DiffConfig(**options),
        )
        orchestrators.append(orchestrator)
        return orchestrator

    yield _make

    for orchestrator in orchestrators:
        orchestrator.close()
