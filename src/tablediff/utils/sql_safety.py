"""
SQL safety utilities for preventing SQL injection.

Provides identifier validation and quoting functions for safe SQL query construction.
Table and column names are the only values interpolated into SQL text; key bounds
are always passed as bound parameters.
"""

import re

from .database_types import DatabaseType


# Strict ASCII-only patterns for SQL identifiers
VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
VALID_SCHEMA_TABLE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$"
)

_QUOTE_STYLES = {
    DatabaseType.POSTGRESQL: ('"', '"'),
    DatabaseType.SQLITE: ('"', '"'),
    DatabaseType.SQLSERVER: ("[", "]"),
    DatabaseType.MYSQL: ("`", "`"),
}


def validate_identifier(identifier: str) -> None:
    """
    Validate a SQL identifier (table name, column name, etc.).

    Args:
        identifier: The identifier to validate

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, and underscores are allowed, "
            "and must start with a letter or underscore."
        )


def validate_schema_table(schema_table: str) -> None:
    """
    Validate a schema.table identifier.

    Args:
        schema_table: The schema.table identifier to validate

    Raises:
        ValueError: If the identifier format is invalid
    """
    if not schema_table:
        raise ValueError("Schema.table identifier cannot be empty")

    if not VALID_SCHEMA_TABLE.match(schema_table):
        raise ValueError(
            f"Invalid schema.table identifier: {schema_table!r}. "
            "Only ASCII letters, digits, and underscores are allowed."
        )


def split_schema_table(schema_table: str) -> tuple[str | None, str]:
    """
    Split ``schema.table`` into its parts.

    Returns:
        (schema, table); schema is None for unqualified names
    """
    validate_schema_table(schema_table)
    if "." in schema_table:
        schema, table = schema_table.split(".", 1)
        return schema, table
    return None, schema_table


def quote_identifier(identifier: str, db_type: DatabaseType) -> str:
    """
    Safely quote a SQL identifier after validation.

    Args:
        identifier: The identifier to quote (table name, column name, etc.)
        db_type: Database type for proper quoting style

    Returns:
        Quoted identifier safe for use in SQL

    Raises:
        ValueError: If the identifier is invalid
    """
    validate_identifier(identifier)
    opening, closing = _QUOTE_STYLES[DatabaseType(db_type)]
    return f"{opening}{identifier}{closing}"


def quote_schema_table(schema_table: str, db_type: DatabaseType) -> str:
    """
    Safely quote a schema.table identifier after validation.

    Args:
        schema_table: The schema.table identifier (e.g., "public.users" or just "users")
        db_type: Database type for proper quoting style

    Returns:
        Quoted identifier safe for use in SQL

    Raises:
        ValueError: If the identifier is invalid
    """
    schema, table = split_schema_table(schema_table)
    if schema is None:
        return quote_identifier(table, db_type)
    return f"{quote_identifier(schema, db_type)}.{quote_identifier(table, db_type)}"
