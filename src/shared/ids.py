"""
Short random identifiers for sessions, albums and stored filenames.

Format: 4 lowercase hexadecimal characters (2 random bytes).

The space is small (65536 values) and kept that way so existing on-disk data
stays addressable. Callers that need uniqueness use `new_unique_id()` with an
existence check instead of relying on the random space.
"""

from __future__ import annotations

import re
import secrets
import time
from typing import Callable


ID_BYTES = 2
ID_SPACE = 1 << (8 * ID_BYTES)
ID_PATTERN = re.compile(r"[0-9a-f]{%d}" % (2 * ID_BYTES))

# Regeneration attempts before giving up on a crowded namespace
MAX_ID_ATTEMPTS = 16


class IdSpaceExhaustedError(RuntimeError):
    pass


def new_id() -> str:
    """
    Generate a 4-character lowercase hex identifier.

    Falls back to the high-resolution clock if the OS random source fails,
    so this never raises.
    """
    try:
        return secrets.token_bytes(ID_BYTES).hex()
    except (OSError, NotImplementedError):
        return f"{time.time_ns() % ID_SPACE:04x}"


def new_unique_id(exists: Callable[[str], bool], *, attempts: int = MAX_ID_ATTEMPTS) -> str:
    """
    Generate an identifier for which `exists(candidate)` is False.

    Raises:
        IdSpaceExhaustedError: If every attempt collided.
    """
    for _ in range(attempts):
        candidate = new_id()
        if not exists(candidate):
            return candidate
    raise IdSpaceExhaustedError(f"no free identifier after {attempts} attempts")


def is_valid_id(value: object) -> bool:
    """True if `value` has the shape `new_id()` produces."""
    return isinstance(value, str) and ID_PATTERN.fullmatch(value) is not None
