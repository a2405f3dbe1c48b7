"""Batched authorization of search candidates.

Candidates are checked in fixed-size windows: every check in a window runs
concurrently, and the next window starts only after the whole window has
settled. This bounds in-flight policy calls per invocation to `batch_size`.

A failure while authorizing one candidate is a deny for that candidate only.
Survivors keep their input order. Each survivor carries both the candidate
(internal fields intact, needed by the local security rules) and the
sanitized record that may be returned to the caller.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from warden.logging import get_logger
from warden.schemas.records import CandidateRecord
from warden.schemas.requester import Requester
from warden.services.authorization import AuthorizationGateway
from warden.services.policy.types import Action
from warden.services.redact import safe_kv
from warden.services.sanitize import sanitize

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 10


@dataclass(frozen=True)
class AuthorizedResult:
    """A candidate that passed remote authorization."""

    candidate: CandidateRecord
    record: dict[str, Any]


async def filter_authorized(
    gateway: AuthorizationGateway,
    requester: Requester,
    candidates: Sequence[CandidateRecord],
    action: Action | str,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[AuthorizedResult]:
    """Keep the candidates the policy service explicitly allowed.

    Args:
        gateway: Authorization gateway used for each candidate.
        requester: Acting identity.
        candidates: Candidates in backend order.
        action: Policy action checked for every candidate.
        batch_size: Maximum concurrent checks.

    Returns:
        Allowed candidates in input order, paired with their sanitized record.

    Raises:
        ValueError: If batch_size < 1 or action is unknown.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    action = Action(action)

    results: list[AuthorizedResult] = []
    for offset in range(0, len(candidates), batch_size):
        window = candidates[offset : offset + batch_size]
        outcomes = await asyncio.gather(
            *(gateway.authorize(requester, action, candidate) for candidate in window),
            return_exceptions=True,
        )

        for candidate, outcome in zip(window, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(
                    "authz.batch.candidate_failed",
                    **safe_kv(
                        action=action.value,
                        record_id=candidate.object_id,
                        error_type=type(outcome).__name__,
                    ),
                )
                continue
            if outcome is True:
                results.append(
                    AuthorizedResult(candidate=candidate, record=sanitize(candidate.hit))
                )

    return results
