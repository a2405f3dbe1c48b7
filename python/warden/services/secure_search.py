"""Secure search pipeline.

Composes the search backend, the authorization gateway, the batched
orchestrator, the local security rules and the sanitizer into the public
operations:

- secure_search: full-text search filtered through both gates
- get_authorized_record: single record, NotFound vs AccessDenied
- get_authorized_suggestions: autocomplete with a department filter only
- get_filter_options: filter values the requester may choose from
- export_records: bulk single-record access for export-privileged roles

Key design decisions:
- Non-unrestricted roles always search inside their own department; a
  requester-supplied department filter is replaced, not merged
- Both gates must pass; which gate rejected is logged and audited but never
  observable in responses or error messages
- Search backend failures on the initial query or a record lookup are fatal
  (UpstreamUnavailableError); policy failures deny one candidate only
- Suggestions skip per-item policy checks and degrade to an empty list
- No raw queries logged (only hash and length)
"""

import asyncio
import math
import time
from collections.abc import Mapping, Sequence

from pydantic import ValidationError

from warden.errors import (
    AccessDeniedError,
    InvalidRequestError,
    NotFoundError,
    UpstreamUnavailableError,
)
from warden.logging import get_logger, with_operation
from warden.schemas.audit import AuditAction, AuditOutcome, DenialGate
from warden.schemas.records import CandidateRecord, InvalidCandidateError
from warden.schemas.requester import Requester, Role
from warden.schemas.search import (
    CLINICAL_DEPARTMENTS,
    MAX_QUERY_LENGTH,
    MAX_SUGGESTION_QUERY_LENGTH,
    RECORD_TYPES,
    DateRange,
    ExportRequest,
    ExportResult,
    FilterOptions,
    PriorityLevel,
    SearchFilters,
    SearchOptions,
    SecureSearchResponse,
    SecurityInfo,
    Suggestion,
    SuggestionKind,
)
from warden.services.audit import AuditEmitter
from warden.services.authorization import AuthorizationGateway, Clock, utc_now
from warden.services.batch_authorization import DEFAULT_BATCH_SIZE, filter_authorized
from warden.services.policy.types import Action
from warden.services.redact import hash_identifier, hash_query, safe_kv
from warden.services.sanitize import sanitize
from warden.services.search_backend.backend import SearchBackend
from warden.services.search_backend.types import Pagination
from warden.services.security_rules import first_violation

logger = get_logger(__name__)

# =============================================================================
# Role tables
# =============================================================================

# Roles that search across every department
UNRESTRICTED_ROLES = frozenset({Role.HOSPITAL_ADMIN})

EXPORT_ROLES = frozenset({Role.HOSPITAL_ADMIN, Role.DEPARTMENT_HEAD, Role.ATTENDING_PHYSICIAN})

# Roles whose record-type filter is narrowed to their specialty
ROLE_RECORD_TYPES: dict[Role, tuple[str, ...]] = {
    Role.LAB_TECHNICIAN: ("lab_result",),
    Role.RADIOLOGIST: ("imaging_study",),
    Role.PHARMACIST: ("medication_record",),
}


def validate_query(query: str, max_length: int) -> str:
    """Trim and bound a free-text query.

    Raises:
        InvalidRequestError: If the trimmed query is empty or too long.
    """
    q = (query or "").strip()
    if not q:
        raise InvalidRequestError("Query must not be empty")
    if len(q) > max_length:
        raise InvalidRequestError(f"Query must be at most {max_length} characters")
    return q


def scoped_filters(requester: Requester, filters: SearchFilters) -> SearchFilters:
    """Force the requester's department onto the filters unless the role is unrestricted."""
    if requester.role in UNRESTRICTED_ROLES:
        return filters
    return filters.model_copy(update={"department": requester.department})


def is_suggestion_visible(requester: Requester, suggestion: Suggestion) -> bool:
    if requester.role in UNRESTRICTED_ROLES:
        return True
    return not suggestion.department or suggestion.department == requester.department


class SecureSearchService:
    """Authorization-filtered access to the clinical search index.

    Holds only its collaborators; every call is an independent invocation.
    """

    def __init__(
        self,
        backend: SearchBackend,
        gateway: AuthorizationGateway,
        audit: AuditEmitter,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Clock = utc_now,
    ):
        """Initialize the pipeline.

        Args:
            backend: External full-text search provider.
            gateway: Remote policy gateway.
            audit: Audit emitter (never raises).
            batch_size: Authorization window size.
            clock: Returns the current aware datetime in the shift timezone.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._backend = backend
        self._gateway = gateway
        self._audit = audit
        self._batch_size = batch_size
        self._clock = clock

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    @with_operation("search")
    async def secure_search(
        self, requester: Requester, query: str, options: SearchOptions | None = None
    ) -> SecureSearchResponse:
        """Search and return only the hits the requester may see.

        Returns:
            Sanitized hits in backend order. A search with no visible hits
            returns an empty response, not an error.

        Raises:
            InvalidRequestError: If the query is empty or too long.
            UpstreamUnavailableError: If the search backend query fails.
        """
        start_time = time.monotonic()
        try:
            q = validate_query(query, MAX_QUERY_LENGTH)
        except InvalidRequestError:
            await self._audit.emit(requester, AuditAction.SEARCH, AuditOutcome.INVALID)
            raise
        options = options or SearchOptions()
        filters = scoped_filters(requester, options.filters)

        try:
            page = await self._backend.search(
                q, filters, Pagination(page=options.page, limit=options.limit)
            )
        except Exception as e:
            logger.error(
                "search.upstream_failed",
                **safe_kv(upstream_call="search", error_type=type(e).__name__),
            )
            await self._audit.emit(requester, AuditAction.SEARCH, AuditOutcome.FAILED, query=q)
            raise UpstreamUnavailableError() from e

        candidates = self._to_candidates(page.hits)
        authorized = await filter_authorized(
            self._gateway, requester, candidates, Action.SEARCH, batch_size=self._batch_size
        )

        now = self._clock()
        visible = [
            result.record
            for result in authorized
            if first_violation(requester, result.candidate, now) is None
        ]

        raw_count = len(page.hits)
        filtered_count = raw_count - len(visible)

        logger.info(
            "search.executed",
            **safe_kv(
                query_hash=hash_query(q),
                query_chars=len(q),
                role=requester.role.value,
                page=options.page,
                raw_count=raw_count,
                invalid_count=raw_count - len(candidates),
                policy_denied=len(candidates) - len(authorized),
                rules_denied=len(authorized) - len(visible),
                results_count=len(visible),
                department_scoped=requester.role not in UNRESTRICTED_ROLES,
                latency_ms=int((time.monotonic() - start_time) * 1000),
            ),
        )

        outcome = AuditOutcome.DENIED if raw_count and not visible else AuditOutcome.GRANTED
        await self._audit.emit(
            requester, AuditAction.SEARCH, outcome, query=q, result_count=len(visible)
        )

        return SecureSearchResponse(
            hits=visible,
            total_hits=len(visible),
            total_pages=math.ceil(len(visible) / options.limit),
            current_page=page.current_page,
            facets=page.facets,
            processing_time_ms=page.processing_time_ms,
            security_info=SecurityInfo(
                requester_role=requester.role,
                requester_department=requester.department,
                filtered_count=filtered_count,
            ),
        )

    # -------------------------------------------------------------------------
    # Single record
    # -------------------------------------------------------------------------

    @with_operation("read")
    async def get_authorized_record(self, requester: Requester, record_id: str) -> dict:
        """Fetch one record if both gates allow it.

        Raises:
            InvalidRequestError: If record_id is blank.
            NotFoundError: If no record has this identifier.
            AccessDeniedError: If the policy service or a security rule rejects.
            UpstreamUnavailableError: If the record lookup fails.
        """
        record_id = (record_id or "").strip()
        if not record_id:
            await self._audit.emit(requester, AuditAction.READ, AuditOutcome.INVALID)
            raise InvalidRequestError("record_id must not be empty")

        try:
            candidate = await self._load_candidate(record_id)
        except UpstreamUnavailableError:
            await self._audit.emit(
                requester, AuditAction.READ, AuditOutcome.FAILED, record_id=record_id
            )
            raise

        if candidate is None:
            await self._audit.emit(
                requester, AuditAction.READ, AuditOutcome.NOT_FOUND, record_id=record_id
            )
            raise NotFoundError()

        gate = await self._denial_gate(requester, candidate, Action.READ)
        if gate is not None:
            await self._audit.emit(
                requester,
                AuditAction.READ,
                AuditOutcome.DENIED,
                record_id=record_id,
                denial_gate=gate,
            )
            raise AccessDeniedError()

        await self._audit.emit(
            requester,
            AuditAction.READ,
            AuditOutcome.GRANTED,
            record_id=record_id,
            result_count=1,
        )
        return sanitize(candidate.hit)

    # -------------------------------------------------------------------------
    # Suggestions
    # -------------------------------------------------------------------------

    @with_operation("suggest")
    async def get_authorized_suggestions(
        self,
        requester: Requester,
        partial_query: str,
        kind: SuggestionKind | str = SuggestionKind.ALL,
    ) -> list[Suggestion]:
        """Autocomplete entries restricted to the requester's department.

        No per-suggestion policy call is made. Upstream failures yield [].

        Raises:
            InvalidRequestError: If the query is empty/too long or kind is unknown.
        """
        try:
            q = validate_query(partial_query, MAX_SUGGESTION_QUERY_LENGTH)
            try:
                kind = SuggestionKind(kind)
            except ValueError:
                raise InvalidRequestError(f"Unknown suggestion type: {kind}") from None
        except InvalidRequestError:
            await self._audit.emit(requester, AuditAction.SUGGEST, AuditOutcome.INVALID)
            raise

        try:
            suggestions = await self._backend.suggest(q, kind)
        except Exception as e:
            logger.warning(
                "suggest.upstream_failed",
                **safe_kv(
                    query_hash=hash_query(q),
                    kind=kind.value,
                    error_type=type(e).__name__,
                ),
            )
            await self._audit.emit(requester, AuditAction.SUGGEST, AuditOutcome.FAILED, query=q)
            return []

        visible = [s for s in suggestions if is_suggestion_visible(requester, s)]
        await self._audit.emit(
            requester,
            AuditAction.SUGGEST,
            AuditOutcome.GRANTED,
            query=q,
            result_count=len(visible),
        )
        return visible

    # -------------------------------------------------------------------------
    # Filter options
    # -------------------------------------------------------------------------

    def get_filter_options(self, requester: Requester) -> FilterOptions:
        """Filter values shaped by the requester's role and department."""
        if requester.role in UNRESTRICTED_ROLES:
            departments = list(CLINICAL_DEPARTMENTS)
        else:
            departments = [requester.department] if requester.department else []

        return FilterOptions(
            departments=departments,
            record_types=list(ROLE_RECORD_TYPES.get(requester.role, RECORD_TYPES)),
            priority_levels=list(PriorityLevel),
            date_ranges=list(DateRange),
            requester_role=requester.role,
            requester_department=requester.department,
        )

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    @with_operation("export")
    async def export_records(
        self,
        requester: Requester,
        query: str,
        record_ids: Sequence[str],
        reason: str,
        format: str = "json",
    ) -> ExportResult:
        """Export records through the single-record path with action export.

        Ids that are missing or denied are skipped. Skips are not reported per
        id, so the caller cannot tell a missing record from a denied one.

        Raises:
            InvalidRequestError: If the export request is malformed.
            AccessDeniedError: If the role may not export or nothing survived.
            UpstreamUnavailableError: If any record lookup fails.
        """
        try:
            request = ExportRequest(
                search_query=query, record_ids=list(record_ids), reason=reason, format=format
            )
        except ValidationError as e:
            await self._audit.emit(requester, AuditAction.EXPORT, AuditOutcome.INVALID)
            raise InvalidRequestError(_first_error_message(e)) from None

        record_ids = list(dict.fromkeys(rid.strip() for rid in request.record_ids))
        requested_count = len(record_ids)

        if requester.role not in EXPORT_ROLES:
            await self._audit.emit(
                requester,
                AuditAction.EXPORT,
                AuditOutcome.DENIED,
                query=request.search_query,
                requested_count=requested_count,
                denial_gate=DenialGate.SECURITY_RULES,
            )
            raise AccessDeniedError()

        try:
            loaded = await self._load_candidates(record_ids)
        except UpstreamUnavailableError:
            await self._audit.emit(
                requester,
                AuditAction.EXPORT,
                AuditOutcome.FAILED,
                query=request.search_query,
                requested_count=requested_count,
            )
            raise

        candidates = [c for c in loaded if c is not None]
        authorized = await filter_authorized(
            self._gateway, requester, candidates, Action.EXPORT, batch_size=self._batch_size
        )
        now = self._clock()
        records = [
            result.record
            for result in authorized
            if first_violation(requester, result.candidate, now) is None
        ]

        if len(authorized) < len(candidates):
            gate = DenialGate.POLICY
        elif len(records) < len(authorized):
            gate = DenialGate.SECURITY_RULES
        else:
            gate = None

        logger.info(
            "export.executed",
            **safe_kv(
                query_hash=hash_query(request.search_query),
                role=requester.role.value,
                format=request.format,
                reason_chars=len(request.reason),
                requested_count=requested_count,
                not_found=requested_count - len(candidates),
                policy_denied=len(candidates) - len(authorized),
                rules_denied=len(authorized) - len(records),
                exported_count=len(records),
            ),
        )

        if not records:
            outcome = AuditOutcome.DENIED
        elif len(records) < requested_count:
            outcome = AuditOutcome.PARTIAL
        else:
            outcome = AuditOutcome.GRANTED

        await self._audit.emit(
            requester,
            AuditAction.EXPORT,
            outcome,
            query=request.search_query,
            result_count=len(records),
            requested_count=requested_count,
            denial_gate=gate,
        )

        if not records:
            raise AccessDeniedError()

        return ExportResult(
            records=records,
            requested_count=requested_count,
            exported_count=len(records),
            format=request.format,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _to_candidates(self, hits: list[dict]) -> list[CandidateRecord]:
        """Lift raw hits into candidates, dropping hits without an identifier."""
        candidates = []
        for position, hit in enumerate(hits):
            try:
                candidates.append(CandidateRecord.from_hit(hit))
            except (InvalidCandidateError, ValidationError) as e:
                logger.warning(
                    "search.invalid_hit",
                    **safe_kv(position=position, error_type=type(e).__name__),
                )
        return candidates

    async def _load_candidate(self, record_id: str) -> CandidateRecord | None:
        try:
            hit = await self._backend.get_record(record_id)
        except Exception as e:
            logger.error(
                "search.upstream_failed",
                **safe_kv(
                    upstream_call="get_record", record_id=record_id, error_type=type(e).__name__
                ),
            )
            raise UpstreamUnavailableError() from e

        if hit is None:
            return None
        if isinstance(hit, Mapping) and not hit.get("objectID"):
            hit = {**hit, "objectID": record_id}
        try:
            return CandidateRecord.from_hit(hit)
        except (InvalidCandidateError, ValidationError) as e:
            # A lookup answered with something that is not a record
            logger.error(
                "search.upstream_failed",
                **safe_kv(
                    upstream_call="get_record", record_id=record_id, error_type=type(e).__name__
                ),
            )
            raise UpstreamUnavailableError() from e

    async def _load_candidates(self, record_ids: list[str]) -> list[CandidateRecord | None]:
        """Look up records in windows of batch_size, preserving id order.

        The first failed lookup cancels the rest of its window and is
        re-raised as-is.
        """
        loaded: list[CandidateRecord | None] = []
        for offset in range(0, len(record_ids), self._batch_size):
            window = record_ids[offset : offset + self._batch_size]
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [group.create_task(self._load_candidate(rid)) for rid in window]
            except ExceptionGroup as eg:
                upstream, rest = eg.split(UpstreamUnavailableError)
                if rest is not None or upstream is None:
                    raise
                raise upstream.exceptions[0]
            loaded.extend(task.result() for task in tasks)
        return loaded

    async def _denial_gate(
        self, requester: Requester, candidate: CandidateRecord, action: Action
    ) -> DenialGate | None:
        """Return the gate that rejects the candidate, or None if both pass."""
        if not await self._gateway.authorize(requester, action, candidate):
            logger.info(
                "record.access_denied",
                **safe_kv(action=action.value, record_id=candidate.object_id, gate="policy"),
            )
            return DenialGate.POLICY

        rule = first_violation(requester, candidate, self._clock())
        if rule is not None:
            logger.info(
                "record.access_denied",
                **safe_kv(
                    action=action.value,
                    record_id=candidate.object_id,
                    gate="security_rules",
                    rule=rule.value,
                    subject_hash=hash_identifier(candidate.subject_id),
                ),
            )
            return DenialGate.SECURITY_RULES
        return None


def _first_error_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first["msg"]
