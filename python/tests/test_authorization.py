"""Tests for the authorization gateway.

Covers:
- Response normalization into ALLOW / DENY / ERROR
- Fail-closed behavior on exceptions and malformed responses
- Subject and resource attributes sent to the policy service
- Injected role / resource / action mappings
"""

from datetime import time, timedelta

import httpx
import pytest

from tests.conftest import FIXED_NOW, fixed_clock, make_requester
from tests.support.fakes import FakePolicyClient, make_hit
from warden.schemas.records import CandidateRecord
from warden.schemas.requester import Role
from warden.services.authorization import AuthorizationGateway, normalize_decision
from warden.services.policy.mappings import DEFAULT_POLICY_MAPPINGS, PolicyMappings
from warden.services.policy.types import Action, PolicyDecision


def candidate(object_id="r1", **kwargs) -> CandidateRecord:
    return CandidateRecord.from_hit(make_hit(object_id, **kwargs))


class TestNormalizeDecision:
    @pytest.mark.parametrize("raw", [True, {"allow": True}, {"allow": True, "debug": {}}])
    def test_explicit_allow(self, raw):
        assert normalize_decision(raw) == PolicyDecision.ALLOW

    @pytest.mark.parametrize("raw", [False, {"allow": False}])
    def test_explicit_deny(self, raw):
        assert normalize_decision(raw) == PolicyDecision.DENY

    @pytest.mark.parametrize(
        "raw",
        [None, 1, "true", "allow", {}, {"allowed": True}, {"allow": "true"}, {"allow": 1}, [True]],
    )
    def test_anything_else_is_error(self, raw):
        assert normalize_decision(raw) == PolicyDecision.ERROR


class TestFailClosed:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("timed out"),
            RuntimeError("boom"),
            ValueError("bad json"),
        ],
    )
    async def test_exception_becomes_error_and_denies(self, physician, error):
        gateway = AuthorizationGateway(FakePolicyClient(default=error), clock=fixed_clock)

        assert await gateway.decide(physician, Action.SEARCH, candidate()) == PolicyDecision.ERROR
        assert await gateway.authorize(physician, Action.SEARCH, candidate()) is False

    @pytest.mark.asyncio
    async def test_malformed_response_denies(self, physician):
        policy = FakePolicyClient(default={"result": "ok"})
        gateway = AuthorizationGateway(policy, clock=fixed_clock)
        assert await gateway.authorize(physician, Action.READ, candidate()) is False

    @pytest.mark.asyncio
    async def test_explicit_allow_authorizes(self, physician):
        gateway = AuthorizationGateway(FakePolicyClient(default={"allow": True}), clock=fixed_clock)
        assert await gateway.authorize(physician, Action.READ, candidate()) is True

    @pytest.mark.asyncio
    async def test_unknown_action_rejected_before_any_call(self, physician):
        policy = FakePolicyClient()
        gateway = AuthorizationGateway(policy, clock=fixed_clock)

        with pytest.raises(ValueError):
            await gateway.authorize(physician, "delete", candidate())
        assert policy.calls == []

    @pytest.mark.asyncio
    async def test_failure_is_logged_without_sensitive_fields(self, physician, log_sink):
        gateway = AuthorizationGateway(
            FakePolicyClient(default=httpx.ConnectError("down")), clock=fixed_clock
        )

        await gateway.authorize(physician, Action.SEARCH, candidate(patient_id="P-secret"))

        failures = [e for e in log_sink if e["event"] == "authz.check.failed"]
        assert len(failures) == 1
        assert failures[0]["error_type"] == "ConnectError"
        assert failures[0]["record_id"] == "r1"
        assert "P-secret" not in str(failures[0])

    @pytest.mark.asyncio
    async def test_malformed_response_is_logged(self, physician, log_sink):
        gateway = AuthorizationGateway(FakePolicyClient(default="yes"), clock=fixed_clock)

        await gateway.authorize(physician, Action.SEARCH, candidate())

        malformed = [e for e in log_sink if e["event"] == "authz.check.malformed"]
        assert malformed[0]["response_type"] == "str"


class TestPolicyQuery:
    @pytest.mark.asyncio
    async def test_subject_and_resource_attributes(self):
        policy = FakePolicyClient()
        gateway = AuthorizationGateway(policy, clock=fixed_clock, tenant="st-marys")
        requester = make_requester(
            id="nurse-7",
            role=Role.REGISTERED_NURSE,
            department="icu",
            shift_start=time(7, 0),
            shift_end=time(19, 0),
            access_expiry=FIXED_NOW + timedelta(days=30),
            assigned_patients=("P1", "P2"),
        )
        record = candidate(
            "lab-9",
            department="icu",
            patient_id="P2",
            sensitivity="high",
            record_type="lab_result",
            date_created="2026-03-01",
        )

        await gateway.authorize(requester, Action.READ, record)

        subject, action, resource = policy.calls[0]
        assert subject.key == "nurse-7"
        assert subject.attributes["role"] == "nurse"
        assert subject.attributes["department"] == "icu"
        assert subject.attributes["shift_active"] is True
        assert subject.attributes["access_expiry"] == (FIXED_NOW + timedelta(days=30)).isoformat()
        assert subject.attributes["assigned_patients"] == ["P1", "P2"]
        assert action == "view"
        assert resource.type == "patient_records"
        assert resource.key == "lab-9"
        assert resource.tenant == "st-marys"
        assert resource.attributes["department"] == "icu"
        assert resource.attributes["patient_id"] == "P2"
        assert resource.attributes["sensitivity_level"] == "high"
        assert resource.attributes["created_at"] == "2026-03-01"

    @pytest.mark.asyncio
    async def test_shift_active_false_outside_shift(self):
        policy = FakePolicyClient()
        gateway = AuthorizationGateway(policy, clock=fixed_clock)
        requester = make_requester(
            role=Role.REGISTERED_NURSE, shift_start=time(19, 0), shift_end=time(7, 0)
        )

        await gateway.authorize(requester, Action.SEARCH, candidate())

        subject, _, _ = policy.calls[0]
        assert subject.attributes["shift_active"] is False

    @pytest.mark.asyncio
    async def test_injected_mappings_replace_defaults(self, physician):
        policy = FakePolicyClient()
        mappings = PolicyMappings(
            roles={"attending_physician": "clinician"},
            resources={"patient_record": "charts"},
            actions={"search": "find"},
        )
        gateway = AuthorizationGateway(policy, mappings=mappings, clock=fixed_clock)

        await gateway.authorize(physician, Action.SEARCH, candidate())

        subject, action, resource = policy.calls[0]
        assert subject.attributes["role"] == "clinician"
        assert action == "find"
        assert resource.type == "charts"

    def test_unknown_names_pass_through(self):
        assert DEFAULT_POLICY_MAPPINGS.map_role("visiting_scholar") == "visiting_scholar"
        assert DEFAULT_POLICY_MAPPINGS.map_action("archive") == "archive"
