"""
Table descriptors: the table name and the ordered comparable columns.

Columns are listed once from the source side and reused for the target.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from ..config import DEFAULT_KEY_COLUMN, parse_column_list, validate_filters
from ..errors import SchemaError
from ..utils.sql_safety import validate_identifier, validate_schema_table

logger = logging.getLogger(__name__)

ColumnLister = Callable[[str], Sequence[str]]


@dataclass(frozen=True)
class TableDescriptor:
    """
    A table and the columns that take part in row hashing.

    Attributes:
        name: Table name, optionally schema qualified
        columns: Comparable columns in schema order (never empty)
        key_column: Integer primary key column used for windowing
    """

    name: str
    columns: tuple[str, ...]
    key_column: str = DEFAULT_KEY_COLUMN

    def __post_init__(self) -> None:
        if not self.columns:
            raise SchemaError(self.name, "no comparable columns")


def build_table_descriptor(
    list_columns: ColumnLister,
    table: str,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
    key_column: str = DEFAULT_KEY_COLUMN,
) -> TableDescriptor:
    """
    Build the descriptor for a table from its schema listing.

    ``include`` keeps only the named columns, in schema order rather than the
    order given. ``exclude`` drops the named columns. Names match
    case-insensitively.

    Args:
        list_columns: Returns a table's column names in schema order
        table: Table name, optionally ``schema.table``
        include: Columns to keep
        exclude: Columns to drop
        key_column: Integer primary key column

    Returns:
        TableDescriptor with at least one column

    Raises:
        ConfigError: If include and exclude are both given (before list_columns is called)
        SchemaError: If the table is missing, the key column is absent,
            or filtering leaves no columns
    """
    include = parse_column_list(include)
    exclude = parse_column_list(exclude)
    validate_filters(include, exclude)

    try:
        validate_schema_table(table)
    except ValueError as e:
        raise SchemaError(table, str(e)) from e

    all_columns = list(list_columns(table))
    if not all_columns:
        raise SchemaError(table, "table does not exist or has no columns")

    by_name = {column.casefold(): column for column in all_columns}

    key = by_name.get(key_column.casefold())
    if key is None:
        raise SchemaError(table, f"key column {key_column!r} not found")

    if include:
        wanted = {name.casefold() for name in include}
        unknown = wanted - by_name.keys()
        if unknown:
            logger.warning(f"{table}: included columns not found: {', '.join(sorted(unknown))}")
        columns = [c for c in all_columns if c.casefold() in wanted]
    elif exclude:
        unwanted = {name.casefold() for name in exclude}
        columns = [c for c in all_columns if c.casefold() not in unwanted]
    else:
        columns = all_columns

    if not columns:
        raise SchemaError(table, "column filter leaves no columns to compare")

    for column in columns:
        try:
            validate_identifier(column)
        except ValueError as e:
            raise SchemaError(table, str(e)) from e

    logger.debug(f"{table}: comparing {len(columns)} of {len(all_columns)} columns")
    return TableDescriptor(name=table, columns=tuple(columns), key_column=key)
