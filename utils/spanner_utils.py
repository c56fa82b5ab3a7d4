"""
==========================================
Spanner-specific resource naming helpers.
==========================================

Spanner naming rules:
    - Instance ids: 2-64 characters, [a-z][-a-z0-9]*[a-z0-9]
    - Database ids: 2-30 characters, [a-z][a-z0-9_-]*[a-z0-9]

Instance ids carry a microsecond timestamp so parallel runs of the same test
never share an instance. Database ids are derived from the test id alone.
"""

import re

from utils.resource_manager_utils import generate_resource_id

MAX_INSTANCE_ID_LENGTH = 64
MAX_DATABASE_ID_LENGTH = 30
MIN_DATABASE_ID_LENGTH = 2

ILLEGAL_INSTANCE_CHARS = re.compile(r"[^a-z0-9-]")
ILLEGAL_DATABASE_CHARS = re.compile(r"[^a-z0-9_]")
INSTANCE_TIME_FORMAT = "%Y%m%d-%H%M%S-%f"

INSTANCE_PADDING = "i"
DATABASE_PADDING = "d"


def _starts_with_letter(value: str) -> bool:
    return bool(value) and 'a' <= value[0] <= 'z'


def generate_instance_id(base_string: str) -> str:
    """
    Generate a Spanner instance id of the form '<base>-<yyyymmdd-hhmmss-ffffff>'.

    Args:
        base_string: Base of the id, typically the test id

    Returns:
        Instance id satisfying Spanner's instance naming rules

    Raises:
        ValueError: If base_string is empty
    """
    if not base_string:
        raise ValueError("base_string cannot be empty.")

    sanitized = ILLEGAL_INSTANCE_CHARS.sub('-', base_string.lower())
    if not _starts_with_letter(sanitized):
        sanitized = INSTANCE_PADDING + sanitized

    return generate_resource_id(
        sanitized,
        ILLEGAL_INSTANCE_CHARS,
        '-',
        MAX_INSTANCE_ID_LENGTH,
        INSTANCE_TIME_FORMAT
    )


def generate_database_id(base_string: str) -> str:
    """
    Generate a Spanner database id from a test id.

    Hyphens and other illegal characters become underscores so the id can be
    used unquoted in GoogleSQL, and trailing underscores are trimmed. Ids
    shorter than the minimum length are padded with 'd'.

    Args:
        base_string: Base of the id, typically the test id

    Returns:
        Database id satisfying Spanner's database naming rules

    Raises:
        ValueError: If base_string is empty or nothing usable remains after sanitizing
    """
    if not base_string:
        raise ValueError("base_string cannot be empty.")

    database_id = ILLEGAL_DATABASE_CHARS.sub('_', base_string.lower())
    if not database_id.strip('_'):
        raise ValueError(
            f"Database id derived from '{base_string}' is empty after removing illegal characters."
        )
    if not _starts_with_letter(database_id):
        database_id = DATABASE_PADDING + database_id

    database_id = database_id[:MAX_DATABASE_ID_LENGTH].rstrip('_')
    return database_id.ljust(MIN_DATABASE_ID_LENGTH, DATABASE_PADDING)
