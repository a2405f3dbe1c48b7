"""Log redaction for clinical search.

Log lines must let an operator correlate a request with its outcome without
carrying protected health information. Three helpers:

- hash_text / hash_query / hash_identifier: stable digests for correlation
- safe_kv: call-site guard that rejects keys which would carry raw PHI,
  credentials or record payloads

Keys in FORBIDDEN_KEYS may only appear with a redacted suffix
(`query_hash`, `patient_id_sha256`, `query_chars`, ...). Record identifiers
(`record_id`) are opaque index keys and may be logged as-is.
"""

import hashlib

import structlog

from warden.config import get_settings

FORBIDDEN_KEYS = frozenset(
    {
        # free text typed by clinicians
        "query",
        "partial_query",
        # protected health information
        "subject_id",
        "patient_id",
        "assigned_patients",
        "record",
        "hit",
        # credentials
        "api_key",
        "bearer",
        "token",
        "secret",
    }
)

REDACTED_SUFFIXES = ("_sha256", "_hash", "_length", "_chars")

# Environments where a violation is a programming error
STRICT_ENVS = frozenset({"local", "test"})


def hash_text(value: str) -> str:
    """Full SHA-256 hex digest of a string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def hash_query(q: str) -> str:
    """Short digest of a query, normalized so case/whitespace variants correlate."""
    return hash_text(q.strip().lower())[:16]


def hash_identifier(value: str | None) -> str | None:
    """Short digest of a patient or subject identifier, None passes through."""
    if value is None:
        return None
    return hash_text(value)[:16]


def find_violations(fields: dict) -> list[str]:
    """Keys that are forbidden and not carrying a redacted suffix."""
    return [
        key
        for key in fields
        if key in FORBIDDEN_KEYS and not any(key.endswith(s) for s in REDACTED_SUFFIXES)
    ]


def safe_kv(*, _env: str | None = None, **kwargs) -> dict:
    """Guard structured log fields at the call site.

    Usage:
        logger.info("search.executed", **safe_kv(
            query_hash=hash_query(q),   # allowed
            results_count=3,            # allowed
            # patient_id=pid,           # rejected
        ))

    In local/test a violation raises so the mistake is caught before merge.
    In staging/prod the offending keys are dropped and a `safe_kv_violation`
    warning is logged; the original call still logs.

    Args:
        _env: Environment override (tests). Defaults to settings.warden_env.
        **kwargs: Fields to validate.

    Returns:
        The validated fields.

    Raises:
        ValueError: In local/test, if any forbidden key is present.
    """
    violations = find_violations(kwargs)
    if not violations:
        return kwargs

    env = _env or get_settings().warden_env.value
    if env in STRICT_ENVS:
        raise ValueError(f"Forbidden log keys without redacted suffix: {violations}")

    structlog.get_logger("warden.services.redact").warning(
        "safe_kv_violation", forbidden_keys=violations
    )
    return {key: value for key, value in kwargs.items() if key not in violations}
