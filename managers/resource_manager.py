"""
==========================================
Common interface for test resource managers.
==========================================

A resource manager owns remote resources created for a single test and
guarantees their teardown through cleanup_all(). Managers are also context
managers, so a test can write:

    >>> with SpannerResourceManager.builder(test_id, project, region).build() as manager:
    ...     manager.create_table(ddl)
"""

from abc import ABC, abstractmethod


class ResourceManagerStateError(RuntimeError):
    """Raised when a manager is used in a state that does not allow the operation.

    Examples are calling any operation after cleanup_all(), or reading and
    writing before the resources exist. Always detected locally, before any
    remote call.
    """
    pass


class ResourceManager(ABC):
    """Owner of remote resources created for a test."""

    @abstractmethod
    def cleanup_all(self) -> None:
        """Delete every resource this manager created and release its clients."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup_all()
        return False
