"""Audit emission.

Every pipeline invocation produces one AuditEvent. Emission never fails the
caller: errors while building or emitting an event are logged and dropped, and
a sink that does not answer within the emit timeout is abandoned.

The default sink writes events through structlog. Free-text queries are
hashed before they reach the log stream.
"""

import asyncio
from typing import Protocol

from warden.logging import get_logger, get_request_id
from warden.schemas.audit import AuditAction, AuditEvent, AuditOutcome, DenialGate
from warden.schemas.requester import Requester
from warden.services.authorization import Clock, utc_now
from warden.services.redact import hash_query, safe_kv

logger = get_logger(__name__)

DEFAULT_EMIT_TIMEOUT_S = 2.0


class AuditSink(Protocol):
    """Destination for audit events."""

    async def emit(self, event: AuditEvent) -> None: ...


class LoggingAuditSink:
    """Audit sink that writes one structured log line per event."""

    def __init__(self, event_name: str = "audit.event"):
        self._event_name = event_name
        self._logger = get_logger("warden.audit")

    async def emit(self, event: AuditEvent) -> None:
        self._logger.info(
            self._event_name,
            **safe_kv(
                event_timestamp=event.timestamp.isoformat(),
                audit_request_id=event.request_id,
                audit_requester_id=event.requester_id,
                requester_role=event.requester_role.value,
                requester_department=event.requester_department,
                action=event.action.value,
                outcome=event.outcome.value,
                query_hash=hash_query(event.query) if event.query else None,
                query_chars=len(event.query) if event.query else None,
                record_id=event.record_id,
                result_count=event.result_count,
                requested_count=event.requested_count,
                denial_gate=event.denial_gate.value if event.denial_gate else None,
            ),
        )


class AuditEmitter:
    """Builds audit events and hands them to a sink, absorbing all failures."""

    def __init__(
        self,
        sink: AuditSink,
        *,
        clock: Clock = utc_now,
        timeout_s: float = DEFAULT_EMIT_TIMEOUT_S,
    ):
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self._sink = sink
        self._clock = clock
        self._timeout_s = timeout_s

    async def emit(
        self,
        requester: Requester,
        action: AuditAction,
        outcome: AuditOutcome,
        *,
        query: str | None = None,
        record_id: str | None = None,
        result_count: int = 0,
        requested_count: int | None = None,
        denial_gate: DenialGate | None = None,
    ) -> None:
        try:
            event = AuditEvent(
                timestamp=self._clock(),
                request_id=get_request_id(),
                requester_id=requester.id,
                requester_role=requester.role,
                requester_department=requester.department,
                action=action,
                outcome=outcome,
                query=query,
                record_id=record_id,
                result_count=result_count,
                requested_count=requested_count,
                denial_gate=denial_gate,
            )
            await asyncio.wait_for(self._sink.emit(event), timeout=self._timeout_s)
        except Exception as e:
            logger.error(
                "audit.emit_failed",
                **safe_kv(action=action, error_type=type(e).__name__),
            )
