"""Policy decision service layer.

Provides the abstract PolicyClient, the Permit.io PDP client, the
internal-to-tenant name mappings, and the shared check types.

Usage:
    from warden.services.policy import PermitPdpClient, PolicySubject, PolicyResource

    client = PermitPdpClient(httpx_client, pdp_url="http://pdp:7766", api_key="...")
    raw = await client.check(subject, "view", resource)
"""

from warden.services.policy.client import PolicyClient
from warden.services.policy.mappings import (
    DEFAULT_POLICY_MAPPINGS,
    IDENTITY_MAPPINGS,
    PolicyMappings,
)
from warden.services.policy.permit import PermitPdpClient
from warden.services.policy.types import Action, PolicyDecision, PolicyResource, PolicySubject

__all__ = [
    # Types
    "Action",
    "PolicyDecision",
    "PolicySubject",
    "PolicyResource",
    # Clients
    "PolicyClient",
    "PermitPdpClient",
    # Mappings
    "PolicyMappings",
    "DEFAULT_POLICY_MAPPINGS",
    "IDENTITY_MAPPINGS",
]
