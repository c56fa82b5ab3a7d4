"""
====================================================
SQL utilities package for Spanner test resources.
====================================================

The package follows a clear organization:
    - ddl.py: Data Definition Language (CREATE/DROP tables and indexes)
    - dml.py: Data Manipulation (Mutation records applied in a batch)

All DDL generation is pure functions (no side effects); statements are
handed to SpannerResourceManager.create_table for execution.

Example:
    >>> from sql.ddl import create_table_ddl
    >>> from sql.dml import Mutation
    >>>
    >>> ddl = create_table_ddl(
    ...     table='Singers',
    ...     columns=[{'name': 'SingerId', 'type': 'INT64', 'nullable': False}],
    ...     primary_key=['SingerId']
    ... )
    >>> row = Mutation.insert('Singers', SingerId=1)
"""

__version__ = "1.0.0"
__all__ = [
    # DDL functions
    'quote_identifier', 'create_table_ddl', 'create_index_ddl',
    'drop_table_ddl', 'drop_index_ddl',
    # DML records
    'Mutation'
]

from .ddl import (
    create_index_ddl,
    create_table_ddl,
    drop_index_ddl,
    drop_table_ddl,
    quote_identifier,
)
from .dml import Mutation
