"""
Tests for the ResourceManager interface in managers/resource_manager.py.
"""

from pytest import mark, raises

from managers.resource_manager import ResourceManager, ResourceManagerStateError


class RecordingManager(ResourceManager):
    """Minimal manager that records cleanup calls."""

    def __init__(self):
        self.cleanups = 0

    def cleanup_all(self):
        self.cleanups += 1


@mark.unit
def test_resource_manager_is_abstract():
    with raises(TypeError):
        ResourceManager()


@mark.unit
def test_context_manager_returns_manager_and_cleans_up():
    manager = RecordingManager()

    with manager as entered:
        assert entered is manager
        assert manager.cleanups == 0

    assert manager.cleanups == 1


@mark.unit
def test_context_manager_does_not_swallow_errors():
    manager = RecordingManager()

    with raises(ValueError):
        with manager:
            raise ValueError("boom")

    assert manager.cleanups == 1


@mark.unit
def test_state_error_is_runtime_error():
    assert issubclass(ResourceManagerStateError, RuntimeError)
