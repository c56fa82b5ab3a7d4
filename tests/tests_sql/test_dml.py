"""
Pytest suite for sql/dml.py (Mutation records).
"""

from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock

from pytest import mark, raises

from sql.dml import Mutation


@mark.unit
def test_insert_builds_single_row():
    mutation = Mutation.insert('Singers', SingerId=1, FirstName='Marc')

    assert mutation.operation == 'insert'
    assert mutation.table == 'Singers'
    assert mutation.columns == ('SingerId', 'FirstName')
    assert mutation.values == ((1, 'Marc'),)
    assert mutation.row_count == 1


@mark.unit
@mark.parametrize('factory, operation', [
    (Mutation.update, 'update'),
    (Mutation.insert_or_update, 'insert_or_update'),
    (Mutation.replace, 'replace'),
])
def test_single_row_factories(factory, operation):
    assert factory('Singers', SingerId=1).operation == operation


@mark.unit
def test_for_rows_builds_multi_row_mutation():
    mutation = Mutation.for_rows('insert', 'Albums', ['SingerId', 'AlbumId'], [[1, 1], [1, 2]])

    assert mutation.values == ((1, 1), (1, 2))
    assert mutation.row_count == 2


@mark.unit
def test_delete_normalizes_keys():
    mutation = Mutation.delete('Albums', (1, 2), 3)

    assert mutation.keys == ((1, 2), (3,))
    assert mutation.row_count == 2


@mark.unit
def test_apply_to_calls_matching_batch_method():
    batch = MagicMock()

    Mutation.for_rows('insert_or_update', 'Singers', ['SingerId'], [(1,), (2,)]).apply_to(batch)

    batch.insert_or_update.assert_called_once_with(
        table='Singers', columns=['SingerId'], values=[[1], [2]]
    )


@mark.unit
def test_apply_to_delete_uses_keyset():
    batch = MagicMock()

    Mutation.delete('Singers', 1, 2).apply_to(batch)

    table, keyset = batch.delete.call_args.args
    assert table == 'Singers'
    assert keyset.keys == [[1], [2]]


@mark.unit
def test_mutation_is_immutable():
    mutation = Mutation.insert('Singers', SingerId=1)

    with raises(FrozenInstanceError):
        mutation.table = 'Albums'


@mark.edge_case
def test_unknown_operation_is_rejected():
    with raises(ValueError, match="Unknown mutation operation"):
        Mutation(operation='upsert', table='Singers', columns=('SingerId',), values=((1,),))


@mark.edge_case
def test_row_length_must_match_columns():
    with raises(ValueError):
        Mutation.for_rows('insert', 'Singers', ['SingerId', 'FirstName'], [(1,)])


@mark.edge_case
def test_write_mutation_needs_rows():
    with raises(ValueError):
        Mutation.for_rows('insert', 'Singers', ['SingerId'], [])


@mark.edge_case
def test_delete_needs_keys():
    with raises(ValueError):
        Mutation.delete('Singers')


@mark.edge_case
def test_table_is_required():
    with raises(ValueError):
        Mutation.insert('', SingerId=1)
