"""
==================================================
Naming and validation helpers for resource managers.
==================================================

Provides the provider-independent pieces of resource naming used by every
resource manager: project id validation, deterministic shortening of long
test ids, and timestamped resource id generation.

Key Features:
    - Project id validation against GCP naming rules
    - Deterministic truncate-and-hash shortening of long ids
    - Timestamped, sanitized resource ids that are unique per process

Example:
    >>> from utils.resource_manager_utils import check_valid_project_id, generate_new_id
    >>>
    >>> check_valid_project_id('my-test-project')
    >>> short_id = generate_new_id('a-very-long-test-identifier-that-keeps-going', 30)
    >>> # Returns: 'a-very-long-test-iden-' followed by 8 hex characters
"""

import hashlib
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Pattern

MIN_PROJECT_ID_LENGTH = 6
MAX_PROJECT_ID_LENGTH = 30
HASH_LENGTH = 8

ILLEGAL_PROJECT_CHARS = re.compile(r"[^a-zA-Z0-9\-!:.']")

_timestamp_lock = threading.Lock()
_last_timestamp = datetime.min.replace(tzinfo=timezone.utc)


def check_valid_project_id(project_id: str) -> None:
    """
    Validate a GCP project id.

    Args:
        project_id: Project id to check

    Raises:
        ValueError: If the id is too short, too long or contains illegal characters
    """
    if project_id is None or len(project_id) < MIN_PROJECT_ID_LENGTH:
        raise ValueError(
            f"Project ID '{project_id}' must be at least {MIN_PROJECT_ID_LENGTH} characters long."
        )
    if len(project_id) > MAX_PROJECT_ID_LENGTH:
        raise ValueError(
            f"Project ID '{project_id}' cannot be longer than {MAX_PROJECT_ID_LENGTH} characters."
        )
    if ILLEGAL_PROJECT_CHARS.search(project_id):
        raise ValueError(
            f"Project ID '{project_id}' is not a valid ID. Only letters, numbers, hyphens, "
            f"single quotes, colons, dots and exclamation points are allowed."
        )


def generate_new_id(id_to_shorten: str, target_length: int) -> str:
    """
    Shorten an id deterministically so it fits within target_length.

    The result is the first (target_length - 9) characters of the id, a hyphen,
    and the first 8 hex characters of the id's SHA-256 digest. Ids that already
    fit are returned unchanged.

    Args:
        id_to_shorten: Id to shorten
        target_length: Maximum length of the returned id

    Returns:
        Id of at most target_length characters

    Raises:
        ValueError: If target_length leaves no room for the hash suffix
    """
    if len(id_to_shorten) <= target_length:
        return id_to_shorten
    if target_length <= HASH_LENGTH + 1:
        raise ValueError(
            f"target_length must be greater than {HASH_LENGTH + 1}, got {target_length}"
        )

    digest = hashlib.sha256(id_to_shorten.encode('utf-8')).hexdigest()[:HASH_LENGTH]
    return f"{id_to_shorten[:target_length - HASH_LENGTH - 1]}-{digest}"


def unique_utc_now() -> datetime:
    """
    Get the current UTC time, strictly later than any previous call.

    Clocks with coarse resolution can hand out the same microsecond twice; the
    returned value is bumped by one microsecond in that case.
    """
    global _last_timestamp
    with _timestamp_lock:
        now = datetime.now(timezone.utc)
        if now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


def generate_resource_id(
    base_string: str,
    illegal_chars: Pattern,
    replace_char: str,
    target_length: int,
    time_format: str
) -> str:
    """
    Generate a lowercase resource id of the form '<base>-<timestamp>'.

    Args:
        base_string: Base of the id, typically the test id
        illegal_chars: Compiled pattern matching characters to replace
        replace_char: Replacement for illegal characters and the separator
        target_length: Maximum length of the returned id
        time_format: strftime format for the UTC timestamp suffix

    Returns:
        Sanitized id, truncated so that the timestamp always fits

    Raises:
        ValueError: If base_string is empty or target_length cannot hold the timestamp
    """
    if not base_string:
        raise ValueError("base_string cannot be empty.")

    sanitized = illegal_chars.sub(replace_char, base_string.lower())
    time_add_on = unique_utc_now().strftime(time_format)

    max_base_length = target_length - len(time_add_on) - len(replace_char)
    if max_base_length <= 0:
        raise ValueError(
            f"target_length {target_length} is too short for timestamp '{time_add_on}'"
        )

    return f"{sanitized[:max_base_length]}{replace_char}{time_add_on}"
