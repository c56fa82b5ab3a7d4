"""
==========================
Utility Functions Package.
==========================

Naming and validation helpers shared by the resource managers.

Modules:
    resource_manager_utils: Project id validation and generic id generation
    spanner_utils: Spanner instance and database id generation
"""

__version__ = "1.0.0"
__all__ = [
    'check_valid_project_id',
    'generate_new_id',
    'generate_resource_id',
    'generate_instance_id',
    'generate_database_id'
]

from .resource_manager_utils import (
    check_valid_project_id,
    generate_new_id,
    generate_resource_id,
)
from .spanner_utils import generate_database_id, generate_instance_id
