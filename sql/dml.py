"""
===========================================
Data Manipulation: Spanner mutation records.
===========================================

Spanner writes are not SQL strings but mutations applied in a batch. This
module provides an immutable Mutation record that tests build up front and
the resource manager applies to a single batch commit.

Operations:
- insert: Insert rows, failing if any already exists
- update: Update existing rows
- insert_or_update: Insert rows or update existing ones
- replace: Insert rows, replacing existing ones entirely
- delete: Delete rows by primary key

Usage:
    from sql.dml import Mutation

    singer = Mutation.insert('Singers', SingerId=1, FirstName='Marc')

    albums = Mutation.for_rows(
        'insert_or_update',
        'Albums',
        columns=['SingerId', 'AlbumId', 'Title'],
        rows=[(1, 1, 'Total Junk'), (1, 2, 'Go, Go, Go')]
    )

    removal = Mutation.delete('Singers', 1, 2)
"""

from dataclasses import dataclass
from typing import Any, Iterable, Sequence, Tuple

from google.cloud.spanner_v1 import KeySet

WRITE_OPERATIONS = ('insert', 'update', 'insert_or_update', 'replace')
OPERATIONS = WRITE_OPERATIONS + ('delete',)


def _as_key(key: Any) -> Tuple[Any, ...]:
    if isinstance(key, (list, tuple)):
        return tuple(key)
    return (key,)


@dataclass(frozen=True)
class Mutation:
    """A single row-level write against one table.

    Attributes:
        operation: One of insert, update, insert_or_update, replace, delete
        table: Target table name
        columns: Column names for write operations
        values: One tuple per row, aligned with columns
        keys: Primary keys of rows to delete (one tuple per row)
    """

    operation: str
    table: str
    columns: Tuple[str, ...] = ()
    values: Tuple[Tuple[Any, ...], ...] = ()
    keys: Tuple[Tuple[Any, ...], ...] = ()

    def __post_init__(self):
        if self.operation not in OPERATIONS:
            raise ValueError(
                f"Unknown mutation operation '{self.operation}'. Expected one of {OPERATIONS}"
            )
        if not self.table:
            raise ValueError("Mutation table cannot be empty")

        if self.operation == 'delete':
            if not self.keys:
                raise ValueError(f"Delete mutation on {self.table} needs at least one key")
            return

        if not self.columns:
            raise ValueError(f"{self.operation} mutation on {self.table} needs columns")
        if not self.values:
            raise ValueError(f"{self.operation} mutation on {self.table} needs at least one row")
        for row in self.values:
            if len(row) != len(self.columns):
                raise ValueError(
                    f"Row {row} has {len(row)} values but {len(self.columns)} columns "
                    f"were given for {self.table}"
                )

    @classmethod
    def for_rows(
        cls,
        operation: str,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]]
    ) -> 'Mutation':
        """Build a write mutation covering several rows of one table."""
        return cls(
            operation=operation,
            table=table,
            columns=tuple(columns),
            values=tuple(tuple(row) for row in rows)
        )

    @classmethod
    def _single_row(cls, operation: str, table: str, row: dict) -> 'Mutation':
        return cls.for_rows(operation, table, list(row.keys()), [list(row.values())])

    @classmethod
    def insert(cls, table: str, **row: Any) -> 'Mutation':
        """Insert one row given as column=value keyword arguments."""
        return cls._single_row('insert', table, row)

    @classmethod
    def update(cls, table: str, **row: Any) -> 'Mutation':
        """Update one row given as column=value keyword arguments."""
        return cls._single_row('update', table, row)

    @classmethod
    def insert_or_update(cls, table: str, **row: Any) -> 'Mutation':
        """Insert or update one row given as column=value keyword arguments."""
        return cls._single_row('insert_or_update', table, row)

    @classmethod
    def replace(cls, table: str, **row: Any) -> 'Mutation':
        """Replace one row given as column=value keyword arguments."""
        return cls._single_row('replace', table, row)

    @classmethod
    def delete(cls, table: str, *keys: Any) -> 'Mutation':
        """Delete rows by primary key; composite keys are passed as tuples."""
        return cls(operation='delete', table=table, keys=tuple(_as_key(key) for key in keys))

    def apply_to(self, batch) -> None:
        """Add this mutation to a Spanner batch.

        Args:
            batch: google.cloud.spanner_v1 Batch (or anything exposing the same methods)
        """
        if self.operation == 'delete':
            batch.delete(self.table, KeySet(keys=[list(key) for key in self.keys]))
            return

        write = getattr(batch, self.operation)
        write(
            table=self.table,
            columns=list(self.columns),
            values=[list(row) for row in self.values]
        )

    @property
    def row_count(self) -> int:
        """Number of rows this mutation touches."""
        return len(self.keys) if self.operation == 'delete' else len(self.values)
