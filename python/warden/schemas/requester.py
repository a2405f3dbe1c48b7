"""Requester identity schema.

A Requester is built once per request from verified credential claims and is
immutable for the rest of the pipeline invocation. Claims use camelCase keys
(shiftStart, accessExpiry, ...) and are accepted as-is.
"""

from datetime import datetime, time, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """Clinical roles known to the pipeline."""

    HOSPITAL_ADMIN = "hospital_admin"
    DEPARTMENT_HEAD = "department_head"
    ATTENDING_PHYSICIAN = "attending_physician"
    RESIDENT_DOCTOR = "resident_doctor"
    REGISTERED_NURSE = "registered_nurse"
    NURSE_PRACTITIONER = "nurse_practitioner"
    LAB_TECHNICIAN = "lab_technician"
    RADIOLOGIST = "radiologist"
    PHARMACIST = "pharmacist"
    TEMP_STAFF = "temp_staff"


class Requester(BaseModel):
    """The acting identity for one pipeline invocation.

    Attributes:
        id: Stable requester identifier (credential subject).
        role: One of Role.
        department: Home department.
        email: Optional contact, carried for audit context only.
        shift_start / shift_end: Optional time-of-day bounds of the current shift.
        access_expiry: Optional instant after which access lapses (always tz-aware).
        assigned_patients: Optional assigned subject list. None means no list was issued.
        emergency_access: Break-glass flag that bypasses local time/assignment rules.
    """

    id: str = Field(..., min_length=1)
    role: Role
    department: str = ""
    email: str | None = None
    shift_start: time | None = None
    shift_end: time | None = None
    access_expiry: datetime | None = None
    assigned_patients: tuple[str, ...] | None = None
    emergency_access: bool = False

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator("access_expiry")
    @classmethod
    def ensure_aware_expiry(cls, value: datetime | None) -> datetime | None:
        """Naive expiry timestamps are read as UTC."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_claims(cls, claims: dict) -> "Requester":
        """Build a Requester from verified credential claims.

        Unknown claims (permissions, names, ...) are ignored.
        """
        return cls.model_validate(claims)

    @property
    def has_shift_bounds(self) -> bool:
        return self.shift_start is not None and self.shift_end is not None
