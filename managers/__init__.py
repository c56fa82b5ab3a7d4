"""
========================================================
Resource managers for integration test infrastructure.
========================================================

Each manager owns the remote resources created for one test and removes
them in cleanup_all(), including after a failed provisioning step.

Modules:
    resource_manager: Common ResourceManager interface and usage errors
    spanner_resource_manager: Lazily provisioned Spanner instance/database

Example:
    >>> from managers import SpannerResourceManager
    >>>
    >>> with SpannerResourceManager.builder('orders-it', 'my-project', 'us-central1').build() as manager:
    ...     manager.create_table(ddl)

Requirements:
    - google-cloud-spanner >= 3.40
    - python-dotenv >= 1.0.0
"""

__version__ = "0.1.0"
__all__ = [
    'ResourceManager',
    'ResourceManagerStateError',
    'SpannerResourceManager',
    'SpannerResourceManagerError',
    'Builder'
]

from .resource_manager import ResourceManager, ResourceManagerStateError
from .spanner_resource_manager import (
    Builder,
    SpannerResourceManager,
    SpannerResourceManagerError,
)
