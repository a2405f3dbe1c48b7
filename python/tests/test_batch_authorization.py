"""Tests for the batched authorization orchestrator.

Covers:
- Window size bounds concurrent policy checks
- Windows run sequentially
- Per-candidate failure isolation
- Order preservation and sanitized output
"""

import httpx
import pytest

from tests.conftest import fixed_clock
from tests.support.fakes import FakePolicyClient, make_hit
from warden.schemas.records import INTERNAL_FIELDS, CandidateRecord
from warden.services.authorization import AuthorizationGateway
from warden.services.batch_authorization import filter_authorized
from warden.services.policy.types import Action


def candidates(count: int) -> list[CandidateRecord]:
    return [CandidateRecord.from_hit(make_hit(f"r{i}")) for i in range(count)]


def gateway_for(policy: FakePolicyClient) -> AuthorizationGateway:
    return AuthorizationGateway(policy, clock=fixed_clock)


class TestWindowing:
    @pytest.mark.asyncio
    async def test_in_flight_checks_never_exceed_batch_size(self, physician):
        policy = FakePolicyClient(delay_s=0.01)

        result = await filter_authorized(
            gateway_for(policy), physician, candidates(25), Action.SEARCH, batch_size=10
        )

        assert len(result) == 25
        assert policy.max_in_flight == 10

    @pytest.mark.asyncio
    async def test_window_of_one_is_sequential(self, physician):
        policy = FakePolicyClient(delay_s=0.001)

        await filter_authorized(
            gateway_for(policy), physician, candidates(5), Action.SEARCH, batch_size=1
        )

        assert policy.max_in_flight == 1
        assert policy.checked_keys == ["r0", "r1", "r2", "r3", "r4"]

    @pytest.mark.asyncio
    async def test_every_candidate_checked_once(self, physician):
        policy = FakePolicyClient()

        await filter_authorized(
            gateway_for(policy), physician, candidates(23), Action.SEARCH, batch_size=10
        )

        assert sorted(policy.checked_keys) == sorted(f"r{i}" for i in range(23))

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self, physician):
        policy = FakePolicyClient()

        result = await filter_authorized(gateway_for(policy), physician, [], Action.SEARCH)

        assert result == []
        assert policy.calls == []

    @pytest.mark.asyncio
    async def test_invalid_batch_size_rejected(self, physician):
        with pytest.raises(ValueError, match="batch_size"):
            await filter_authorized(
                gateway_for(FakePolicyClient()),
                physician,
                candidates(1),
                Action.SEARCH,
                batch_size=0,
            )


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_failure_denies_only_that_candidate(self, physician):
        policy = FakePolicyClient(
            answers={"r3": httpx.ReadTimeout("slow"), "r12": RuntimeError("boom")}
        )

        result = await filter_authorized(
            gateway_for(policy), physician, candidates(15), Action.SEARCH, batch_size=10
        )

        kept = [r.candidate.object_id for r in result]
        assert "r3" not in kept
        assert "r12" not in kept
        assert len(kept) == 13
        assert len(policy.calls) == 15

    @pytest.mark.asyncio
    async def test_gateway_exception_is_isolated(self, physician):
        class ExplodingGateway(AuthorizationGateway):
            async def authorize(self, requester, action, candidate):
                if candidate.object_id == "r1":
                    raise RuntimeError("gateway bug")
                return True

        gateway = ExplodingGateway(FakePolicyClient(), clock=fixed_clock)

        result = await filter_authorized(gateway, physician, candidates(3), Action.SEARCH)

        assert [r.candidate.object_id for r in result] == ["r0", "r2"]

    @pytest.mark.asyncio
    async def test_all_denied_returns_empty(self, physician):
        policy = FakePolicyClient(default=False)

        result = await filter_authorized(gateway_for(policy), physician, candidates(4), "search")

        assert result == []


class TestOrdering:
    @pytest.mark.asyncio
    async def test_survivors_keep_input_order(self, physician):
        denied = {"r1", "r4", "r5", "r11", "r17"}
        policy = FakePolicyClient(answers={key: False for key in denied})

        result = await filter_authorized(
            gateway_for(policy), physician, candidates(20), Action.SEARCH, batch_size=3
        )

        expected = [f"r{i}" for i in range(20) if f"r{i}" not in denied]
        assert [r.candidate.object_id for r in result] == expected

    @pytest.mark.asyncio
    async def test_records_are_sanitized_candidates_are_not(self, physician):
        result = await filter_authorized(
            gateway_for(FakePolicyClient()), physician, candidates(2), Action.SEARCH
        )

        for authorized in result:
            for field_name in INTERNAL_FIELDS:
                assert field_name not in authorized.record
            assert authorized.candidate.department == "cardiology"
            assert authorized.record["objectID"] == authorized.candidate.object_id
