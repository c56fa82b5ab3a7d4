"""
Shared fixtures and fakes for resource manager tests.

Key fixtures:
- fake_client: in-memory stand-in for google.cloud.spanner.Client that counts
  every remote call and can be told to fail a given step.
- manager_factory: builds a SpannerResourceManager wired to fake_client.

Failing a step:
    fake_client.fail_on['create_instance'] = InternalServerError("boom")

Steps: create_instance, create_database, update_ddl, write, read, delete_instance.
Provisioning and DDL failures are raised from operation.result(), like a
failed long-running operation. The create_instance_call and create_database_call
steps fail create() itself, before any operation is returned, the way the
service rejects a request it refuses outright.
"""

from collections import Counter

import pytest

REMOTE_STEPS = ('create_instance', 'create_database', 'update_ddl', 'write', 'read', 'delete_instance')


class FakeOperation:
    """Long-running operation whose result() raises the configured error."""

    def __init__(self, error=None):
        self.error = error
        self.timeouts = []

    def result(self, timeout=None):
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return None


class FakeBatch:
    """Collects mutations and commits them to the client on a clean exit."""

    def __init__(self, client):
        self.client = client
        self.pending = []

    def insert(self, table, columns, values):
        self.pending.append(('insert', table, columns, values))

    def update(self, table, columns, values):
        self.pending.append(('update', table, columns, values))

    def insert_or_update(self, table, columns, values):
        self.pending.append(('insert_or_update', table, columns, values))

    def replace(self, table, columns, values):
        self.pending.append(('replace', table, columns, values))

    def delete(self, table, keyset):
        self.pending.append(('delete', table, keyset))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.client.commit(self.pending)
        return False


class FakeSnapshot:
    """Single-use read context; rows come back in insertion order."""

    def __init__(self, client):
        self.client = client
        self.closed = False

    def read(self, table, columns, keyset):
        self.client.calls['read'] += 1
        self.client.reads.append((table, list(columns), keyset))
        error = self.client.fail_on.get('read')
        if error is not None:
            raise error
        rows = self.client.tables.get(table, {}).values()
        return iter([[row.get(column) for column in columns] for row in rows])

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


class FakeDatabase:
    def __init__(self, client, instance_id, database_id, ddl_statements=(), database_dialect=None):
        self.client = client
        self.instance_id = instance_id
        self.database_id = database_id
        self.ddl_statements = list(ddl_statements)
        self.database_dialect = database_dialect

    def create(self):
        self.client.calls['create_database'] += 1
        self.client.created_databases.append(self)
        self.client.raise_if_failing('create_database_call')
        return FakeOperation(self.client.fail_on.get('create_database'))

    def update_ddl(self, statements):
        self.client.calls['update_ddl'] += 1
        self.client.ddl_updates.append(list(statements))
        operation = FakeOperation(self.client.fail_on.get('update_ddl'))
        self.client.operations.append(operation)
        return operation

    def batch(self):
        return FakeBatch(self.client)

    def snapshot(self):
        snapshot = FakeSnapshot(self.client)
        self.client.snapshots.append(snapshot)
        return snapshot


class FakeInstance:
    def __init__(self, client, instance_id, configuration_name=None, display_name=None, node_count=None):
        self.client = client
        self.instance_id = instance_id
        self.configuration_name = configuration_name
        self.display_name = display_name
        self.node_count = node_count

    def create(self):
        self.client.calls['create_instance'] += 1
        self.client.created_instances.append(self)
        self.client.raise_if_failing('create_instance_call')
        operation = FakeOperation(self.client.fail_on.get('create_instance'))
        self.client.operations.append(operation)
        return operation

    def delete(self):
        self.client.calls['delete_instance'] += 1
        self.client.deleted_instances.append(self.instance_id)
        error = self.client.fail_on.get('delete_instance')
        if error is not None:
            raise error

    def database(self, database_id, ddl_statements=(), database_dialect=None):
        return FakeDatabase(self.client, self.instance_id, database_id, ddl_statements, database_dialect)


class FakeSpannerClient:
    """
    Mock google.cloud.spanner.Client for manager tests.

    Tables are stored per client as {table: {first column value: row dict}},
    which is enough to check that written rows can be read back.

    Attributes:
        fail_on: Dict mapping a step name to the exception it raises
        calls: Counter of remote calls per step, plus 'close'
        closed: True once close() was called
    """

    def __init__(self, fail_on=None):
        self.fail_on = dict(fail_on or {})
        self.calls = Counter()
        self.closed = False
        self.tables = {}
        self.created_instances = []
        self.created_databases = []
        self.deleted_instances = []
        self.ddl_updates = []
        self.commits = []
        self.reads = []
        self.snapshots = []
        self.operations = []

    def instance(self, instance_id, configuration_name=None, display_name=None, node_count=None):
        return FakeInstance(self, instance_id, configuration_name, display_name, node_count)

    def commit(self, pending):
        self.calls['write'] += 1
        self.commits.append(list(pending))
        error = self.fail_on.get('write')
        if error is not None:
            raise error

        for mutation in pending:
            operation, table = mutation[0], mutation[1]
            rows = self.tables.setdefault(table, {})
            if operation == 'delete':
                for key in mutation[2].keys:
                    rows.pop(key[0], None)
                continue
            columns, values = mutation[2], mutation[3]
            for row_values in values:
                row = dict(zip(columns, row_values))
                key = row_values[0]
                if operation == 'update':
                    rows[key].update(row)
                else:
                    rows[key] = row

    def raise_if_failing(self, step):
        error = self.fail_on.get(step)
        if error is not None:
            raise error

    def close(self):
        self.calls['close'] += 1
        self.closed = True

    def remote_call_count(self):
        return sum(self.calls[step] for step in REMOTE_STEPS)


@pytest.fixture
def fake_client():
    return FakeSpannerClient()


@pytest.fixture
def manager_factory(fake_client):
    """
    Factory that builds a SpannerResourceManager on top of fake_client.

    Keyword overrides are passed to SpannerResourceManager.builder().
    """
    from managers.spanner_resource_manager import SpannerResourceManager

    def factory(**overrides):
        params = dict(
            test_id='spanner-rm-test',
            project_id='test-project',
            region='us-central1',
            client=fake_client,
            operation_timeout=5
        )
        params.update(overrides)
        return SpannerResourceManager.builder(
            params.pop('test_id'),
            params.pop('project_id'),
            params.pop('region'),
            **params
        ).build()

    return factory


@pytest.fixture
def singers_ddl():
    return (
        "CREATE TABLE Singers (SingerId INT64 NOT NULL, FirstName STRING(1024), "
        "LastName STRING(1024)) PRIMARY KEY (SingerId)"
    )
