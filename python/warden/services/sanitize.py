"""Result sanitizer.

Strips internal-only security metadata from a record before it leaves the
pipeline. The input is never mutated; the result is a shallow copy, and
sanitizing an already-sanitized record returns an equal record.
"""

from collections.abc import Mapping
from typing import Any

from warden.schemas.records import INTERNAL_FIELDS


def sanitize(record: Mapping[str, Any]) -> dict[str, Any]:
    """Return a shallow copy of record without internal-only fields."""
    return {key: value for key, value in record.items() if key not in INTERNAL_FIELDS}
