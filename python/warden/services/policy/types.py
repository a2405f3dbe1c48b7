"""Shared type definitions for the policy decision layer.

- Action: Pipeline-level actions checked against the policy service
- PolicyDecision: Normalized, tagged outcome of one policy check
- PolicySubject / PolicyResource: Provider-agnostic check arguments

Only PolicyDecision.ALLOW lets a record through. DENY and ERROR both block;
they are kept apart so failures stay visible in logs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Action(str, Enum):
    READ = "read"
    SEARCH = "search"
    EXPORT = "export"


class PolicyDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    ERROR = "error"


@dataclass(frozen=True)
class PolicySubject:
    """The requester as the policy service sees it.

    Attributes:
        key: Requester identifier
        attributes: Attribute-based inputs (role, department, shift_active, ...)
    """

    key: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PolicyResource:
    """A candidate record as the policy service sees it.

    Attributes:
        type: Resource type key (after mapping)
        key: Record identifier
        tenant: Tenant the resource lives in
        attributes: Attribute-based inputs (department, patient_id, sensitivity_level)
    """

    type: str
    key: str
    tenant: str = "default"
    attributes: dict[str, Any] = field(default_factory=dict)
