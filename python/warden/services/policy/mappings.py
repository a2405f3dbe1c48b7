"""Mappings between internal names and the policy service's keys.

The policy tenant models fewer roles, resources and permissions than the
pipeline does. PolicyMappings translates internal names before a check is
sent. Unknown names pass through unchanged.

Mappings are immutable values injected into the AuthorizationGateway, so
tests and tenants can supply their own tables.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


def _frozen(table: dict[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(table))


DEFAULT_ROLE_MAPPINGS = _frozen(
    {
        "hospital_admin": "admin",
        "department_head": "doctor",
        "attending_physician": "doctor",
        "resident_doctor": "doctor",
        "registered_nurse": "nurse",
        "nurse_practitioner": "nurse",
        "lab_technician": "nurse",
        "radiologist": "doctor",
        "pharmacist": "nurse",
        "temp_staff": "temporary_staff",
    }
)

DEFAULT_RESOURCE_MAPPINGS = _frozen(
    {
        "patient_record": "patient_records",
        "lab_result": "patient_records",
        "imaging_study": "patient_records",
        "medication_record": "patient_records",
        "vital_signs": "patient_records",
        "discharge_summary": "patient_records",
    }
)

DEFAULT_ACTION_MAPPINGS = _frozen(
    {
        "read": "view",
        "search": "search",
        "export": "export",
    }
)


@dataclass(frozen=True)
class PolicyMappings:
    """Role, resource-type and action translation tables."""

    roles: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    resources: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    actions: Mapping[str, str] = field(default_factory=lambda: _frozen({}))

    def map_role(self, role: str) -> str:
        return self.roles.get(role, role)

    def map_resource(self, resource_type: str) -> str:
        return self.resources.get(resource_type, resource_type)

    def map_action(self, action: str) -> str:
        return self.actions.get(action, action)


DEFAULT_POLICY_MAPPINGS = PolicyMappings(
    roles=DEFAULT_ROLE_MAPPINGS,
    resources=DEFAULT_RESOURCE_MAPPINGS,
    actions=DEFAULT_ACTION_MAPPINGS,
)

IDENTITY_MAPPINGS = PolicyMappings()
