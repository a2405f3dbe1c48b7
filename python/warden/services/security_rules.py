"""Local security rules applied after remote authorization.

These rules encode constraints the policy decision service does not express.
A candidate must clear both the remote policy check and these rules.

Evaluation order (first failing rule rejects):
1. Emergency override - requester.emergency_access accepts immediately
2. Access expiry - an access_expiry earlier than now rejects
3. Shift hours - shift-restricted roles outside [shift_start, shift_end] are rejected
4. Assignment - assignment-restricted roles only see their assigned subjects
5. Sensitivity - HIGH tier records require a privileged role

Rules 3 and 4 are role-gated: roles outside the gate pass vacuously.

All functions are pure. The caller supplies `now` as an aware datetime in the
timezone shift hours are expressed in.
"""

from collections.abc import Sequence
from datetime import datetime, time
from enum import Enum

from warden.schemas.records import CandidateRecord, SensitivityTier
from warden.schemas.requester import Requester, Role

SHIFT_RESTRICTED_ROLES = frozenset({Role.REGISTERED_NURSE, Role.RESIDENT_DOCTOR})
ASSIGNMENT_RESTRICTED_ROLES = frozenset({Role.REGISTERED_NURSE})
HIGH_SENSITIVITY_ROLES = frozenset(
    {Role.HOSPITAL_ADMIN, Role.DEPARTMENT_HEAD, Role.ATTENDING_PHYSICIAN}
)


class SecurityRule(str, Enum):
    """Local rule that rejected a candidate."""

    ACCESS_EXPIRED = "access_expired"
    OUTSIDE_SHIFT = "outside_shift"
    NOT_ASSIGNED = "not_assigned"
    SENSITIVITY = "sensitivity"


def is_access_expired(requester: Requester, now: datetime) -> bool:
    return requester.access_expiry is not None and requester.access_expiry < now


def is_within_shift(requester: Requester, at: time) -> bool:
    """Check a time of day against the requester's shift.

    Bounds are inclusive and compared at minute resolution. A shift whose end
    precedes its start runs across midnight. Missing bounds mean no restriction.
    """
    if not requester.has_shift_bounds:
        return True

    current = at.replace(second=0, microsecond=0, tzinfo=None)
    start = requester.shift_start.replace(tzinfo=None)  # type: ignore[union-attr]
    end = requester.shift_end.replace(tzinfo=None)  # type: ignore[union-attr]

    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def is_assigned(requester: Requester, candidate: CandidateRecord) -> bool:
    """None means the requester carries no assignment list at all."""
    if requester.assigned_patients is None:
        return True
    return candidate.subject_id in requester.assigned_patients


def can_access_high_sensitivity(requester: Requester) -> bool:
    return requester.role in HIGH_SENSITIVITY_ROLES


def first_violation(
    requester: Requester, candidate: CandidateRecord, now: datetime
) -> SecurityRule | None:
    """Return the first rule the candidate fails, or None if it is accepted."""
    if requester.emergency_access:
        return None

    if is_access_expired(requester, now):
        return SecurityRule.ACCESS_EXPIRED

    if requester.role in SHIFT_RESTRICTED_ROLES and not is_within_shift(requester, now.time()):
        return SecurityRule.OUTSIDE_SHIFT

    if requester.role in ASSIGNMENT_RESTRICTED_ROLES and not is_assigned(requester, candidate):
        return SecurityRule.NOT_ASSIGNED

    if candidate.sensitivity_tier == SensitivityTier.HIGH and not can_access_high_sensitivity(
        requester
    ):
        return SecurityRule.SENSITIVITY

    return None


def passes_security_rules(requester: Requester, candidate: CandidateRecord, now: datetime) -> bool:
    return first_violation(requester, candidate, now) is None


def apply_security_rules(
    requester: Requester, candidates: Sequence[CandidateRecord], now: datetime
) -> list[CandidateRecord]:
    """Filter candidates through the rule set, preserving order."""
    return [c for c in candidates if passes_security_rules(requester, c, now)]
