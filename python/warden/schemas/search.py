"""Search Pydantic schemas.

Contains request options and response models for the secure search
operations: full search, suggestions, filter options and export.

Records returned to callers are plain dicts that have already been
sanitized; these schemas never describe internal security fields.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from warden.schemas.requester import Role

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_QUERY_LENGTH = 200
MAX_SUGGESTION_QUERY_LENGTH = 100
MAX_EXPORT_RECORDS = 100

EXPORT_FORMATS = Literal["csv", "json", "pdf"]


class PriorityLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class DateRange(str, Enum):
    LAST_WEEK = "last_week"
    LAST_MONTH = "last_month"
    LAST_QUARTER = "last_quarter"
    OLDER = "older"


class SuggestionKind(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    DIAGNOSIS = "diagnosis"
    ALL = "all"


RECORD_TYPES = (
    "patient_record",
    "lab_result",
    "imaging_study",
    "medication_record",
    "vital_signs",
    "discharge_summary",
)

CLINICAL_DEPARTMENTS = (
    "emergency",
    "cardiology",
    "neurology",
    "pediatrics",
    "radiology",
    "surgery",
    "icu",
    "oncology",
)


# =============================================================================
# Request Schemas
# =============================================================================


class SearchFilters(BaseModel):
    """Named filters forwarded to the search backend. All optional."""

    department: str | None = None
    record_type: str | None = None
    priority_level: PriorityLevel | None = None
    date_range: DateRange | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("department", "record_type", mode="before")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SearchOptions(BaseModel):
    """Paging and filter options for secure_search."""

    page: int = Field(default=0, ge=0, description="Zero-based page index")
    limit: int = Field(
        default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Hits per page (max 100)"
    )
    filters: SearchFilters = Field(default_factory=SearchFilters)

    model_config = ConfigDict(frozen=True)


class ExportRequest(BaseModel):
    """Request to export a set of records the requester previously found."""

    search_query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)
    record_ids: list[str] = Field(..., min_length=1, max_length=MAX_EXPORT_RECORDS)
    reason: str = Field(..., min_length=10, max_length=500)
    format: EXPORT_FORMATS = "json"

    @field_validator("record_ids")
    @classmethod
    def reject_blank_ids(cls, value: list[str]) -> list[str]:
        if any(not record_id.strip() for record_id in value):
            raise ValueError("record_ids must not contain blank identifiers")
        return value


# =============================================================================
# Response Schemas
# =============================================================================


class SecurityInfo(BaseModel):
    """Summary of how the requester's identity shaped the result set."""

    requester_role: Role
    requester_department: str
    filtered_count: int


class SecureSearchResponse(BaseModel):
    """Response for secure_search.

    hits are sanitized and in backend order; total_hits counts only the
    hits that survived both authorization gates.
    """

    hits: list[dict[str, Any]] = Field(default_factory=list)
    total_hits: int = 0
    total_pages: int = 0
    current_page: int = 0
    facets: dict[str, Any] = Field(default_factory=dict)
    processing_time_ms: int | None = None
    security_info: SecurityInfo


class Suggestion(BaseModel):
    """Lightweight autocomplete entry."""

    text: str
    kind: SuggestionKind
    department: str | None = None

    model_config = ConfigDict(frozen=True)


class FilterOptions(BaseModel):
    """Filter values the requester may choose from."""

    departments: list[str]
    record_types: list[str]
    priority_levels: list[PriorityLevel]
    date_ranges: list[DateRange]
    requester_role: Role
    requester_department: str


class ExportResult(BaseModel):
    """Outcome of an export request."""

    records: list[dict[str, Any]]
    requested_count: int
    exported_count: int
    format: EXPORT_FORMATS
