"""Authorization gateway.

Adapts a (requester, action, candidate) triple into a policy query, calls the
policy decision service, and normalizes its answer.

Fail-closed contract:
- Only an explicit allow (`true` or `{"allow": true}`) becomes ALLOW
- An explicit refusal (`false` or `{"allow": false}`) becomes DENY
- Every other shape, and every exception (timeouts, HTTP errors, network
  errors, decoding errors), becomes ERROR
- authorize() collapses DENY and ERROR to False

The gateway holds no mutable state; role/resource/action tables are injected
through PolicyMappings.
"""

import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from warden.logging import get_logger
from warden.schemas.records import CandidateRecord
from warden.schemas.requester import Requester
from warden.services.policy.client import PolicyClient
from warden.services.policy.mappings import DEFAULT_POLICY_MAPPINGS, PolicyMappings
from warden.services.policy.types import Action, PolicyDecision, PolicyResource, PolicySubject
from warden.services.redact import safe_kv
from warden.services.security_rules import is_within_shift

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_decision(raw: Any) -> PolicyDecision:
    """Map an untrusted policy response onto the tagged decision type.

    Identity checks against True/False are intentional: truthy values such as
    1, "true" or a non-empty dict are not an allow.
    """
    if raw is True:
        return PolicyDecision.ALLOW
    if raw is False:
        return PolicyDecision.DENY
    if isinstance(raw, dict) and "allow" in raw:
        allow = raw["allow"]
        if allow is True:
            return PolicyDecision.ALLOW
        if allow is False:
            return PolicyDecision.DENY
    return PolicyDecision.ERROR


class AuthorizationGateway:
    """Single-record authorization against the policy decision service."""

    def __init__(
        self,
        client: PolicyClient,
        *,
        mappings: PolicyMappings = DEFAULT_POLICY_MAPPINGS,
        tenant: str = "default",
        clock: Clock = utc_now,
    ):
        """Initialize the gateway.

        Args:
            client: Policy decision client.
            mappings: Internal-to-tenant name tables.
            tenant: Tenant key attached to every resource.
            clock: Returns the current aware datetime in the shift timezone.
        """
        self._client = client
        self._mappings = mappings
        self._tenant = tenant
        self._clock = clock

    def build_subject(self, requester: Requester, now: datetime) -> PolicySubject:
        """Requester attributes needed for attribute-based evaluation."""
        return PolicySubject(
            key=requester.id,
            attributes={
                "email": requester.email,
                "role": self._mappings.map_role(requester.role.value),
                "department": requester.department,
                "shift_active": is_within_shift(requester, now.time()),
                "access_expiry": (
                    requester.access_expiry.isoformat() if requester.access_expiry else None
                ),
                "assigned_patients": list(requester.assigned_patients or ()),
            },
        )

    def build_resource(self, candidate: CandidateRecord) -> PolicyResource:
        """Candidate attributes needed for attribute-based evaluation."""
        hit = candidate.hit
        return PolicyResource(
            type=self._mappings.map_resource(candidate.record_type),
            key=candidate.object_id,
            tenant=self._tenant,
            attributes={
                "department": candidate.department,
                "patient_id": candidate.subject_id,
                "sensitivity_level": candidate.sensitivity_tier.value,
                "created_at": hit.get("date_created"),
                "last_updated_by": hit.get("last_updated_by"),
                "is_anonymized": bool(hit.get("is_anonymized", False)),
            },
        )

    async def decide(
        self, requester: Requester, action: Action | str, candidate: CandidateRecord
    ) -> PolicyDecision:
        """Return the tagged decision for one candidate. Never raises on service failure.

        Raises:
            ValueError: If action is not one of read, search, export.
        """
        action = Action(action)
        subject = self.build_subject(requester, self._clock())
        resource = self.build_resource(candidate)
        start = time.monotonic()

        try:
            raw = await self._client.check(
                subject, self._mappings.map_action(action.value), resource
            )
        except Exception as e:
            logger.warning(
                "authz.check.failed",
                **safe_kv(
                    action=action.value,
                    record_id=candidate.object_id,
                    error_type=type(e).__name__,
                    latency_ms=int((time.monotonic() - start) * 1000),
                ),
            )
            return PolicyDecision.ERROR

        decision = normalize_decision(raw)
        if decision == PolicyDecision.ERROR:
            logger.warning(
                "authz.check.malformed",
                **safe_kv(
                    action=action.value,
                    record_id=candidate.object_id,
                    response_type=type(raw).__name__,
                ),
            )
        return decision

    async def authorize(
        self, requester: Requester, action: Action | str, candidate: CandidateRecord
    ) -> bool:
        """True only when the policy service explicitly allowed the action."""
        return await self.decide(requester, action, candidate) == PolicyDecision.ALLOW
