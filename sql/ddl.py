"""
=======================================================================
Data Definition Language (DDL) utilities for Spanner test tables.
=======================================================================

Provides pure functions that render Spanner DDL for both database dialects,
so tests can describe a table once and create it in a GoogleSQL or a
PostgreSQL-dialect database.

Key Features:
    - CREATE TABLE with dialect-specific primary key placement
    - Optional interleaving in a parent table
    - Secondary index creation
    - DROP TABLE / DROP INDEX statements
    - Identifier quoting per dialect (backticks vs double quotes)

Functions:
    quote_identifier: Quote a table/column name for the dialect
    create_table_ddl: Generate CREATE TABLE
    create_index_ddl: Generate CREATE INDEX
    drop_table_ddl: Generate DROP TABLE
    drop_index_ddl: Generate DROP INDEX

Example:
    >>> from sql.ddl import create_table_ddl
    >>>
    >>> ddl = create_table_ddl(
    ...     table='Singers',
    ...     columns=[
    ...         {'name': 'SingerId', 'type': 'INT64', 'nullable': False},
    ...         {'name': 'FirstName', 'type': 'STRING(1024)'}
    ...     ],
    ...     primary_key=['SingerId']
    ... )
    >>> print(ddl)
    CREATE TABLE `Singers` (
      `SingerId` INT64 NOT NULL,
      `FirstName` STRING(1024)
    ) PRIMARY KEY (`SingerId`)
"""

from typing import Any, Dict, List, Optional

from google.cloud.spanner_admin_database_v1 import DatabaseDialect


def quote_identifier(name: str, dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL) -> str:
    """Quote an identifier for the given dialect.

    Args:
        name: Table, column or index name
        dialect: Database dialect

    Returns:
        `name` for GoogleSQL, "name" for PostgreSQL
    """
    if dialect == DatabaseDialect.POSTGRESQL:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'
    escaped = name.replace('`', '\\`')
    return f"`{escaped}`"


def _column_definition(column: Dict[str, Any], dialect: DatabaseDialect) -> str:
    if 'name' not in column or 'type' not in column:
        raise ValueError(f"Column definition needs 'name' and 'type': {column}")

    parts = [quote_identifier(column['name'], dialect), column['type']]
    if not column.get('nullable', True):
        parts.append("NOT NULL")
    return " ".join(parts)


def create_table_ddl(
    table: str,
    columns: List[Dict[str, Any]],
    primary_key: List[str],
    dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL,
    interleave_in: Optional[str] = None,
    on_delete_cascade: bool = False,
    if_not_exists: bool = False
) -> str:
    """Generate a Spanner CREATE TABLE statement.

    GoogleSQL places the primary key after the column list; the PostgreSQL
    dialect declares it as a table constraint inside the column list.

    Args:
        table: Table name
        columns: Column dicts with keys: name, type, nullable (default True)
        primary_key: Primary key column names, in key order
        dialect: Database dialect to render for
        interleave_in: Optional parent table to interleave in
        on_delete_cascade: Add ON DELETE CASCADE to the interleave clause
        if_not_exists: Add IF NOT EXISTS

    Returns:
        CREATE TABLE statement without a trailing semicolon (Spanner rejects it)

    Raises:
        ValueError: If columns or primary_key is empty, or a key column is undefined
    """
    if not columns:
        raise ValueError(f"Table {table} needs at least one column")
    if not primary_key:
        raise ValueError(f"Table {table} needs a primary key")

    column_names = {column.get('name') for column in columns}
    missing = [key for key in primary_key if key not in column_names]
    if missing:
        raise ValueError(f"Primary key columns {missing} are not defined on table {table}")

    header = "CREATE TABLE IF NOT EXISTS" if if_not_exists else "CREATE TABLE"
    definitions = [_column_definition(column, dialect) for column in columns]
    key_list = ", ".join(quote_identifier(key, dialect) for key in primary_key)

    if dialect == DatabaseDialect.POSTGRESQL:
        definitions.append(f"PRIMARY KEY ({key_list})")
        body = ",\n  ".join(definitions)
        sql = f"{header} {quote_identifier(table, dialect)} (\n  {body}\n)"
    else:
        body = ",\n  ".join(definitions)
        sql = f"{header} {quote_identifier(table, dialect)} (\n  {body}\n) PRIMARY KEY ({key_list})"

    if interleave_in:
        separator = "," if dialect != DatabaseDialect.POSTGRESQL else ""
        sql += f"{separator}\n  INTERLEAVE IN PARENT {quote_identifier(interleave_in, dialect)}"
        if on_delete_cascade:
            sql += " ON DELETE CASCADE"

    return sql


def create_index_ddl(
    index: str,
    table: str,
    columns: List[str],
    unique: bool = False,
    dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL
) -> str:
    """Generate a CREATE INDEX statement.

    Args:
        index: Index name
        table: Indexed table
        columns: Indexed columns, in order
        unique: Create a UNIQUE index
        dialect: Database dialect to render for

    Returns:
        CREATE INDEX statement
    """
    if not columns:
        raise ValueError(f"Index {index} needs at least one column")

    kind = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
    column_list = ", ".join(quote_identifier(column, dialect) for column in columns)
    return (
        f"{kind} {quote_identifier(index, dialect)} "
        f"ON {quote_identifier(table, dialect)} ({column_list})"
    )


def drop_table_ddl(
    table: str,
    if_exists: bool = False,
    dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL
) -> str:
    """Generate a DROP TABLE statement."""
    clause = "DROP TABLE IF EXISTS" if if_exists else "DROP TABLE"
    return f"{clause} {quote_identifier(table, dialect)}"


def drop_index_ddl(
    index: str,
    if_exists: bool = False,
    dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL
) -> str:
    """Generate a DROP INDEX statement."""
    clause = "DROP INDEX IF EXISTS" if if_exists else "DROP INDEX"
    return f"{clause} {quote_identifier(index, dialect)}"
