"""
==================================================
Spanner resource manager for integration tests.
==================================================

Manages one Spanner instance, one database and any number of tables for a
single test. The instance and database are created lazily, when the first
table is created, and are deleted together by cleanup_all().

Naming:
    - database id: the test id, sanitized for Spanner database naming rules
    - instance id: '<test id>-<yyyymmdd-hhmmss-ffffff>', sanitized, so parallel
      runs of the same test never share an instance
    - test ids longer than 30 characters are first shortened to
      '<first 21 chars>-<8 char hash>'

State machine:
    constructed -> instance created -> database created -> cleaned up (terminal)

    Any failure while creating the instance or database runs cleanup_all()
    before the error is raised, so no half-provisioned instance is left behind
    and the manager becomes unusable. Failures of DDL, writes and reads are
    raised without cleanup; the manager stays usable.

The class is thread-safe: every public method holds one reentrant lock for
its full duration, so operations on a manager are serialized.

Example:
    >>> from managers import SpannerResourceManager
    >>> from sql.dml import Mutation
    >>>
    >>> manager = SpannerResourceManager.builder('my-test', 'my-project', 'us-central1').build()
    >>> try:
    ...     manager.create_table(
    ...         "CREATE TABLE Singers (SingerId INT64 NOT NULL, Name STRING(100)) "
    ...         "PRIMARY KEY (SingerId)"
    ...     )
    ...     manager.write(Mutation.insert('Singers', SingerId=1, Name='Marc'))
    ...     rows = manager.read_table_records('Singers', 'SingerId', 'Name')
    ... finally:
    ...     manager.cleanup_all()
"""

import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Tuple, Union

from google.api_core.client_options import ClientOptions
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.credentials import AnonymousCredentials
from google.cloud import spanner
from google.cloud.spanner_admin_database_v1 import DatabaseDialect

from core.config import config
from core.logger import get_logger
from managers.resource_manager import ResourceManager, ResourceManagerStateError
from sql.dml import Mutation
from utils.resource_manager_utils import check_valid_project_id, generate_new_id
from utils.spanner_utils import generate_database_id, generate_instance_id

logger = get_logger(__name__)

MAX_BASE_ID_LENGTH = 30
MAX_DISPLAY_NAME_LENGTH = 30

# Failures of a remote call, including a long-running operation that timed out
REMOTE_ERRORS = (GoogleAPIError, FutureTimeoutError)

Row = Tuple[Any, ...]


class SpannerResourceManagerError(Exception):
    """Exception raised when a remote Spanner call made by the manager fails.

    Covers instance/database provisioning, DDL, writes, reads and instance
    deletion. The provider error is available as __cause__.
    """
    pass


def create_spanner_client(project_id: str) -> spanner.Client:
    """
    Create a Spanner client for the project.

    Uses the emulator with anonymous credentials when SPANNER_EMULATOR_HOST
    is configured, otherwise application default credentials.

    Args:
        project_id: GCP project id

    Returns:
        google.cloud.spanner.Client
    """
    if config.emulator_host:
        logger.info(f"Using Spanner emulator at {config.emulator_host}")
        return spanner.Client(
            project=project_id,
            credentials=AnonymousCredentials(),
            client_options=ClientOptions(api_endpoint=config.emulator_host)
        )
    return spanner.Client(project=project_id)


class SpannerResourceManager(ResourceManager):
    """Creates and tears down the Spanner resources of a single test.

    Supports one instance, one database and multiple tables per manager.

    Attributes:
        has_instance: True once the instance has been created
        has_database: True once the database has been created
        is_closed: True once cleanup_all() released the client

    Example:
        >>> with SpannerResourceManager.builder('orders-it', 'my-project', 'us-east1').build() as manager:
        ...     manager.create_table(ddl)
        ...     manager.write(mutations)
    """

    def __init__(
        self,
        client,
        test_id: str,
        project_id: str,
        region: str,
        dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL,
        node_count: int = 1,
        operation_timeout: Optional[float] = None
    ):
        """Initialize the manager without creating any remote resource.

        Args:
            client: Spanner client; owned by the manager and closed by cleanup_all()
            test_id: Id of the test the resources belong to
            project_id: GCP project to create the instance in
            region: Region of the 'regional-<region>' instance config
            dialect: SQL dialect of the database
            node_count: Number of nodes of the instance
            operation_timeout: Seconds to wait on long-running operations (None = no limit)

        Raises:
            ValueError: If the project id is invalid or no usable ids can be derived
        """
        check_valid_project_id(project_id)
        if node_count < 1:
            raise ValueError(f"node_count must be at least 1, got {node_count}")

        if len(test_id) > MAX_BASE_ID_LENGTH:
            test_id = generate_new_id(test_id, MAX_BASE_ID_LENGTH)

        self._project_id = project_id
        self._instance_id = generate_instance_id(test_id)
        self._database_id = generate_database_id(test_id)

        self._region = region
        self._dialect = dialect
        self._node_count = node_count
        self._operation_timeout = operation_timeout

        self._client = client
        self._database = None
        self._lock = threading.RLock()

        self._has_instance = False
        self._has_database = False
        self._instance_requested = False

    @classmethod
    def builder(
        cls,
        test_id: str,
        project_id: str,
        region: str,
        dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL,
        **options: Any
    ) -> 'Builder':
        """Start building a manager.

        Args:
            test_id: Id of the test the resources belong to
            project_id: GCP project id
            region: Spanner region, e.g. 'us-central1'
            dialect: SQL dialect (GoogleSQL by default)
            **options: node_count, operation_timeout or client overrides

        Returns:
            Builder whose build() returns the manager
        """
        return Builder(test_id, project_id, region, dialect, **options)

    def get_project_id(self) -> str:
        """Return the project this manager creates resources in."""
        return self._project_id

    def get_instance_id(self) -> str:
        """Return the id of the instance this manager creates and manages tables in."""
        return self._instance_id

    def get_database_id(self) -> str:
        """Return the id of the database this manager creates and manages tables in."""
        return self._database_id

    @property
    def dialect(self) -> DatabaseDialect:
        return self._dialect

    @property
    def has_instance(self) -> bool:
        with self._lock:
            return self._has_instance

    @property
    def has_database(self) -> bool:
        with self._lock:
            return self._has_database

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._client is None

    def _check_is_usable(self) -> None:
        if self._client is None:
            raise ResourceManagerStateError("Manager has cleaned up all resources and is unusable.")

    def _check_has_instance_and_database(self) -> None:
        if not self._has_instance:
            raise ResourceManagerStateError("There is no instance for manager to perform operation on.")
        if not self._has_database:
            raise ResourceManagerStateError("There is no database for manager to perform operation on.")

    def _cleanup_after_failed_provisioning(self) -> None:
        """Run cleanup_all() without letting its failure hide the provisioning error."""
        try:
            self.cleanup_all()
        except Exception as cleanup_error:
            logger.error(
                f"Cleanup after failed provisioning of {self._instance_id} also failed: "
                f"{cleanup_error.__cause__ or cleanup_error}"
            )

    def _maybe_create_instance(self) -> None:
        with self._lock:
            self._check_is_usable()
            if self._has_instance:
                return

            logger.info(f"Creating instance {self._instance_id} in project {self._project_id}.")
            instance = self._client.instance(
                self._instance_id,
                configuration_name=f"projects/{self._project_id}/instanceConfigs/regional-{self._region}",
                display_name=self._instance_id[:MAX_DISPLAY_NAME_LENGTH],
                node_count=self._node_count
            )
            self._instance_requested = True
            try:
                instance.create().result(self._operation_timeout)
            except REMOTE_ERRORS as e:
                logger.error(f"Failed to create instance {self._instance_id}: {e}")
                self._cleanup_after_failed_provisioning()
                raise SpannerResourceManagerError("Failed to create instance.") from e
            except KeyboardInterrupt:
                logger.error(f"Interrupted while creating instance {self._instance_id}")
                self._cleanup_after_failed_provisioning()
                raise

            self._has_instance = True
            logger.info(f"Successfully created instance {self._instance_id}.")

    def _maybe_create_database(self) -> None:
        with self._lock:
            self._check_is_usable()
            if self._has_database:
                return

            logger.info(f"Creating database {self._database_id} in instance {self._instance_id}.")
            database = self._client.instance(self._instance_id).database(
                self._database_id,
                ddl_statements=[],
                database_dialect=self._dialect
            )
            try:
                database.create().result(self._operation_timeout)
            except REMOTE_ERRORS as e:
                logger.error(f"Failed to create database {self._database_id}: {e}")
                self._cleanup_after_failed_provisioning()
                raise SpannerResourceManagerError("Failed to create database.") from e
            except KeyboardInterrupt:
                logger.error(f"Interrupted while creating database {self._database_id}")
                self._cleanup_after_failed_provisioning()
                raise

            self._database = database
            self._has_database = True
            logger.info(f"Successfully created database {self._database_id}.")

    def create_table(self, statement: str) -> None:
        """
        Create a table given a CREATE TABLE DDL statement.

        Creates the instance and database first if they do not exist yet.

        Args:
            statement: The CREATE TABLE DDL statement

        Raises:
            ResourceManagerStateError: If called after cleanup_all()
            SpannerResourceManagerError: If provisioning or the DDL update fails
        """
        with self._lock:
            self._check_is_usable()
            self._maybe_create_instance()
            self._maybe_create_database()

            logger.info(f"Creating table in database {self._database_id} using statement '{statement}'.")
            try:
                self._database.update_ddl([statement]).result(self._operation_timeout)
            except REMOTE_ERRORS as e:
                logger.error(f"Failed to create table in database {self._database_id}: {e}")
                raise SpannerResourceManagerError("Failed to create table.") from e
            logger.info(f"Successfully created table in database {self._database_id}.")

    def execute_ddl_statements(self, statements: Iterable[str]) -> None:
        """
        Apply several DDL statements as one schema update.

        Creates the instance and database first if they do not exist yet.

        Args:
            statements: DDL statements, applied in order

        Raises:
            ValueError: If no statement is given
            ResourceManagerStateError: If called after cleanup_all()
            SpannerResourceManagerError: If provisioning or the DDL update fails
        """
        statements = list(statements)
        if not statements:
            raise ValueError("At least one DDL statement is required")

        with self._lock:
            self._check_is_usable()
            self._maybe_create_instance()
            self._maybe_create_database()

            logger.info(f"Applying {len(statements)} DDL statements to database {self._database_id}.")
            try:
                self._database.update_ddl(statements).result(self._operation_timeout)
            except REMOTE_ERRORS as e:
                logger.error(f"Failed to apply DDL to database {self._database_id}: {e}")
                raise SpannerResourceManagerError("Failed to execute DDL statements.") from e
            logger.info(f"Successfully applied DDL to database {self._database_id}.")

    def write(self, table_records: Union[Mutation, Iterable[Mutation]]) -> None:
        """
        Write one or more mutations in a single batch.

        The target tables must have been created with create_table() beforehand.

        Args:
            table_records: A Mutation or an iterable of Mutations

        Raises:
            ResourceManagerStateError: If called after cleanup_all() or before
                the instance and database exist
            SpannerResourceManagerError: If the batch commit fails
        """
        if isinstance(table_records, Mutation):
            mutations = [table_records]
        else:
            mutations = list(table_records)

        with self._lock:
            self._check_is_usable()
            self._check_has_instance_and_database()

            if not mutations:
                logger.info("No mutations to send.")
                return

            logger.info(f"Sending {len(mutations)} mutations to {self._instance_id}.{self._database_id}")
            try:
                with self._database.batch() as batch:
                    for mutation in mutations:
                        mutation.apply_to(batch)
            except GoogleAPIError as e:
                logger.error(f"Failed to write mutations to {self._instance_id}.{self._database_id}: {e}")
                raise SpannerResourceManagerError("Failed to write mutations.") from e
            logger.info(f"Successfully sent mutations to {self._instance_id}.{self._database_id}")

    def read_table_records(self, table_id: str, *column_names: Union[str, Iterable[str]]) -> Tuple[Row, ...]:
        """
        Read all rows of a table.

        The table must have been created with create_table() beforehand. The
        whole table is loaded into memory.

        Args:
            table_id: Table to read
            *column_names: Column names, either as separate arguments or as a
                single iterable

        Returns:
            Tuple of rows; each row is a tuple of values in column_names order

        Raises:
            ValueError: If no column name is given
            ResourceManagerStateError: If called after cleanup_all() or before
                the instance and database exist
            SpannerResourceManagerError: If the read fails
        """
        if len(column_names) == 1 and not isinstance(column_names[0], str):
            columns = list(column_names[0])
        else:
            columns = list(column_names)
        if not columns:
            raise ValueError("At least one column name is required")

        with self._lock:
            self._check_is_usable()
            self._check_has_instance_and_database()

            logger.info(f"Loading columns {columns} from {self._instance_id}.{self._database_id}.{table_id}")
            try:
                with self._database.snapshot() as snapshot:
                    result_set = snapshot.read(
                        table=table_id,
                        columns=columns,
                        keyset=spanner.KeySet(all_=True)
                    )
                    table_records = tuple(tuple(row) for row in result_set)
            except GoogleAPIError as e:
                logger.error(f"Error reading {table_id} from {self._instance_id}.{self._database_id}: {e}")
                raise SpannerResourceManagerError("Error occurred while reading table records.") from e

            logger.info(
                f"Loaded {len(table_records)} records from "
                f"{self._instance_id}.{self._database_id}.{table_id}"
            )
            return table_records

    def cleanup_all(self) -> None:
        """
        Delete the instance (with its database and tables) and close the client.

        The manager is unusable afterwards. The client is closed even when the
        instance deletion fails; the failure is raised after that. Calling this
        again on a cleaned up manager does nothing.

        Raises:
            SpannerResourceManagerError: If the instance could not be deleted
        """
        with self._lock:
            if self._client is None:
                logger.info("Manager has already been cleaned up.")
                return

            try:
                if self._has_instance or self._instance_requested:
                    logger.info(f"Deleting instance {self._instance_id}...")
                    try:
                        self._client.instance(self._instance_id).delete()
                    except NotFound:
                        logger.warning(f"Instance {self._instance_id} does not exist, nothing to delete.")
                self._has_instance = False
                self._has_database = False
                self._instance_requested = False
            except GoogleAPIError as e:
                logger.error(f"Failed to delete instance {self._instance_id}: {e}")
                raise SpannerResourceManagerError("Failed to delete instance.") from e
            finally:
                client, self._client = self._client, None
                self._database = None
                client.close()

            logger.info("Manager successfully cleaned up.")


@dataclass
class Builder:
    """Settings for a SpannerResourceManager, validated by build().

    Attributes:
        test_id: Id of the test the resources belong to
        project_id: GCP project id
        region: Spanner region
        dialect: SQL dialect of the database
        node_count: Number of nodes of the instance
        operation_timeout: Seconds to wait on long-running operations
        client: Prebuilt Spanner client; created from project_id when None
    """

    test_id: str
    project_id: str
    region: str
    dialect: DatabaseDialect = DatabaseDialect.GOOGLE_STANDARD_SQL
    node_count: int = field(default_factory=lambda: config.node_count)
    operation_timeout: Optional[float] = field(default_factory=lambda: config.operation_timeout)
    client: Any = None

    @classmethod
    def from_config(cls, test_id: str, **options: Any) -> 'Builder':
        """
        Build settings from core.config (SPANNER_PROJECT_ID, SPANNER_REGION, SPANNER_DIALECT).

        Raises:
            ValueError: If no project id is configured
        """
        if not config.spanner_project_id:
            raise ValueError("SPANNER_PROJECT_ID (or GOOGLE_CLOUD_PROJECT) is not set")
        return cls(
            test_id=test_id,
            project_id=config.spanner_project_id,
            region=config.spanner_region,
            dialect=config.spanner_dialect,
            **options
        )

    def set_node_count(self, node_count: int) -> 'Builder':
        """Set the number of nodes of the instance."""
        self.node_count = node_count
        return self

    def set_operation_timeout(self, operation_timeout: Optional[float]) -> 'Builder':
        """Set the seconds to wait on long-running operations (None = no limit)."""
        self.operation_timeout = operation_timeout
        return self

    def set_client(self, client) -> 'Builder':
        """Use a prebuilt Spanner client; build() then skips creating one."""
        self.client = client
        return self

    def build(self) -> SpannerResourceManager:
        """
        Validate the settings and create the manager.

        Raises:
            ValueError: If the project id is invalid or no usable ids can be derived
        """
        check_valid_project_id(self.project_id)

        client = self.client if self.client is not None else create_spanner_client(self.project_id)
        try:
            return SpannerResourceManager(
                client,
                self.test_id,
                self.project_id,
                self.region,
                dialect=self.dialect,
                node_count=self.node_count,
                operation_timeout=self.operation_timeout
            )
        except ValueError:
            if self.client is None:
                client.close()
            raise
