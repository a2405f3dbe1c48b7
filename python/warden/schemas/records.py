"""Candidate record schema.

A candidate is one hit from the search backend before authorization
filtering. Search hits carry underscore-prefixed security metadata that must
never reach the caller; CandidateRecord lifts that metadata into typed fields
and keeps the untouched hit alongside for later sanitization.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Internal-only hit fields (stripped by the sanitizer)
DEPARTMENT_FIELD = "_department"
SUBJECT_FIELD = "_patient_id"
SENSITIVITY_FIELD = "_sensitivity_level"

INTERNAL_FIELDS = (DEPARTMENT_FIELD, SUBJECT_FIELD, SENSITIVITY_FIELD)

DEFAULT_RECORD_TYPE = "patient_record"


class SensitivityTier(str, Enum):
    """Coarse classification gating privileged-role-only access."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class InvalidCandidateError(ValueError):
    """Raised when a hit cannot be turned into a candidate (no identifier)."""


class CandidateRecord(BaseModel):
    """A single search hit prior to authorization filtering.

    Attributes:
        object_id: Backend identifier of the record.
        record_type: Resource type (defaults to patient_record when absent).
        department: Owning department, empty for department-agnostic records.
        subject_id: Patient the record belongs to, if any.
        sensitivity_tier: Defaults to NORMAL when the hit has no tier.
        hit: The raw hit as returned by the backend (internal fields included).
    """

    object_id: str = Field(..., min_length=1)
    record_type: str = DEFAULT_RECORD_TYPE
    department: str = ""
    subject_id: str | None = None
    sensitivity_tier: SensitivityTier = SensitivityTier.NORMAL
    hit: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> "CandidateRecord":
        """Build a candidate from a raw backend hit.

        Missing security fields fall back to their defaults. An unrecognized
        sensitivity value is treated as HIGH so that it only clears the
        privileged-role gate.

        Raises:
            InvalidCandidateError: If the hit is not a mapping or carries no objectID.
        """
        if not isinstance(hit, Mapping):
            raise InvalidCandidateError(f"Search hit is not a mapping: {type(hit).__name__}")

        object_id = hit.get("objectID")
        if not object_id:
            raise InvalidCandidateError("Search hit is missing objectID")

        raw_tier = hit.get(SENSITIVITY_FIELD) or SensitivityTier.NORMAL.value
        try:
            tier = SensitivityTier(raw_tier)
        except ValueError:
            tier = SensitivityTier.HIGH

        subject_id = hit.get(SUBJECT_FIELD)

        return cls(
            object_id=str(object_id),
            record_type=str(hit.get("record_type") or DEFAULT_RECORD_TYPE),
            department=str(hit.get(DEPARTMENT_FIELD) or ""),
            subject_id=str(subject_id) if subject_id is not None else None,
            sensitivity_tier=tier,
            hit=hit,
        )
