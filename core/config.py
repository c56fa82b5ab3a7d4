"""
==================================================
Configuration management for the resource manager.
==================================================

Loads configuration from environment variables (.env file) and provides
a centralized Config singleton used by the Spanner resource manager
builders and the logging setup.

The configuration system ensures:
- Single source of truth for Spanner project/region/dialect defaults
- Type conversion and validation of numeric settings
- Optional routing to the Spanner emulator for local runs

Example:
    >>> from core.config import config
    >>>
    >>> print(f"Project: {config.spanner_project_id}, region: {config.spanner_region}")
    >>> timeout = config.operation_timeout
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from google.cloud.spanner_admin_database_v1 import DatabaseDialect

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def parse_dialect(value: str) -> DatabaseDialect:
    """Convert a dialect name such as 'POSTGRESQL' into a DatabaseDialect.

    Args:
        value: Dialect name, case-insensitive

    Returns:
        Matching DatabaseDialect member

    Raises:
        ValueError: If the name is not a supported dialect
    """
    name = value.strip().upper()
    if name not in ('GOOGLE_STANDARD_SQL', 'POSTGRESQL'):
        raise ValueError(
            f"Unsupported Spanner dialect '{value}'. "
            f"Expected GOOGLE_STANDARD_SQL or POSTGRESQL."
        )
    return DatabaseDialect[name]


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    """Parse an operation timeout in seconds; empty or 0 means wait forever."""
    if value is None or not value.strip():
        return None
    timeout = float(value)
    if timeout < 0:
        raise ValueError(f"SPANNER_OPERATION_TIMEOUT must be >= 0, got {value}")
    return timeout or None


@dataclass
class SpannerConfig:
    """Spanner settings used when building resource managers.

    Attributes:
        project_id: GCP project hosting the test instances
        region: Region used for the 'regional-<region>' instance config
        dialect: SQL dialect new databases are created with
        node_count: Number of nodes for each test instance
        operation_timeout: Seconds to wait for long-running operations (None = no limit)
        emulator_host: host:port of a Spanner emulator, if any
    """

    project_id: Optional[str]
    region: str
    dialect: DatabaseDialect
    node_count: int
    operation_timeout: Optional[float]
    emulator_host: Optional[str]


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: Root log level name
        log_file: Optional log file name
        log_dir: Directory for the log file
    """

    level: str
    log_file: Optional[str]
    log_dir: str


class Config:
    """Centralized configuration manager.

    Attributes:
        spanner: SpannerConfig instance with Spanner defaults
        logging: LoggingConfig instance with logging settings

    Example:
        >>> config = Config()
        >>> print(config.spanner_region)
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.spanner = SpannerConfig(
            project_id=os.getenv('SPANNER_PROJECT_ID') or os.getenv('GOOGLE_CLOUD_PROJECT'),
            region=os.getenv('SPANNER_REGION', 'us-central1'),
            dialect=parse_dialect(os.getenv('SPANNER_DIALECT', 'GOOGLE_STANDARD_SQL')),
            node_count=int(os.getenv('SPANNER_NODE_COUNT', '1')),
            operation_timeout=_parse_timeout(os.getenv('SPANNER_OPERATION_TIMEOUT', '600')),
            emulator_host=os.getenv('SPANNER_EMULATOR_HOST') or None
        )

        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            log_file=os.getenv('LOG_FILE') or None,
            log_dir=os.getenv('LOG_DIR', 'logs')
        )

    @property
    def spanner_project_id(self) -> Optional[str]:
        """Get the default Spanner project id."""
        return self.spanner.project_id

    @property
    def spanner_region(self) -> str:
        """Get the default Spanner region."""
        return self.spanner.region

    @property
    def spanner_dialect(self) -> DatabaseDialect:
        """Get the default database dialect."""
        return self.spanner.dialect

    @property
    def node_count(self) -> int:
        """Get the node count for new instances."""
        return self.spanner.node_count

    @property
    def operation_timeout(self) -> Optional[float]:
        """Get the long-running operation timeout in seconds."""
        return self.spanner.operation_timeout

    @property
    def emulator_host(self) -> Optional[str]:
        """Get the Spanner emulator host, if configured."""
        return self.spanner.emulator_host


# Global configuration instance
config = Config()
