"""Pydantic schemas for pipeline inputs, outputs and audit events.

All schemas are re-exported here for convenient imports.
"""

from warden.schemas.audit import AuditAction, AuditEvent, AuditOutcome, DenialGate
from warden.schemas.records import (
    INTERNAL_FIELDS,
    CandidateRecord,
    InvalidCandidateError,
    SensitivityTier,
)
from warden.schemas.requester import Requester, Role
from warden.schemas.search import (
    DateRange,
    ExportRequest,
    ExportResult,
    FilterOptions,
    PriorityLevel,
    SearchFilters,
    SearchOptions,
    SecureSearchResponse,
    SecurityInfo,
    Suggestion,
    SuggestionKind,
)

__all__ = [
    # Identity
    "Requester",
    "Role",
    # Records
    "CandidateRecord",
    "InvalidCandidateError",
    "SensitivityTier",
    "INTERNAL_FIELDS",
    # Search
    "SearchFilters",
    "SearchOptions",
    "SecureSearchResponse",
    "SecurityInfo",
    "PriorityLevel",
    "DateRange",
    "Suggestion",
    "SuggestionKind",
    "FilterOptions",
    "ExportRequest",
    "ExportResult",
    # Audit
    "AuditEvent",
    "AuditAction",
    "AuditOutcome",
    "DenialGate",
]
