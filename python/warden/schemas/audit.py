"""Audit event schema.

One event is produced per pipeline invocation and handed to an AuditSink.
Events are immutable once built.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

from warden.schemas.requester import Role


class AuditAction(str, Enum):
    SEARCH = "search"
    SUGGEST = "suggest"
    READ = "read"
    EXPORT = "export"


class AuditOutcome(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    NOT_FOUND = "not_found"
    PARTIAL = "partial"  # export where some ids were skipped
    FAILED = "failed"  # search backend unavailable
    INVALID = "invalid"  # request rejected before any lookup


class DenialGate(str, Enum):
    """Which gate rejected a record. Internal only, never returned to callers."""

    POLICY = "policy"
    SECURITY_RULES = "security_rules"


class AuditEvent(BaseModel):
    """Immutable record of one pipeline invocation outcome.

    Attributes:
        timestamp: When the event was built (tz-aware).
        request_id: Correlation ID from the logging context, if any.
        requester_id / requester_role / requester_department: Acting identity.
        action: Operation kind.
        outcome: What the requester was shown.
        query: Free-text query (search, suggest, export).
        record_id: Target record for single-record access.
        result_count: Number of records/suggestions shown.
        requested_count: Number of ids asked for (export only).
        denial_gate: Rejecting gate for single-record access/export denials.
    """

    timestamp: datetime
    request_id: str | None = None
    requester_id: str
    requester_role: Role
    requester_department: str
    action: AuditAction
    outcome: AuditOutcome
    query: str | None = None
    record_id: str | None = None
    result_count: int = 0
    requested_count: int | None = None
    denial_gate: DenialGate | None = None

    model_config = ConfigDict(frozen=True)
