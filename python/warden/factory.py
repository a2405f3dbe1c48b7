"""Service assembly.

Wires the Algolia backend, the Permit PDP client, the authorization gateway,
the audit emitter and the pipeline around one shared httpx.AsyncClient.

Usage:
    from warden.factory import open_secure_search_service

    async with open_secure_search_service() as service:
        response = await service.secure_search(requester, "chest pain")
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import httpx

from warden.config import Settings, get_settings
from warden.logging import configure_logging, get_logger
from warden.services.audit import AuditEmitter, AuditSink, LoggingAuditSink
from warden.services.authorization import AuthorizationGateway
from warden.services.policy.mappings import DEFAULT_POLICY_MAPPINGS, PolicyMappings
from warden.services.policy.permit import PermitPdpClient
from warden.services.search_backend.algolia import AlgoliaSearchBackend
from warden.services.secure_search import SecureSearchService

logger = get_logger(__name__)


def build_secure_search_service(
    client: httpx.AsyncClient,
    settings: Settings,
    *,
    mappings: PolicyMappings = DEFAULT_POLICY_MAPPINGS,
    audit_sink: AuditSink | None = None,
) -> SecureSearchService:
    """Build the pipeline from settings around a caller-owned HTTP client."""
    zone = settings.shift_zone

    def clock() -> datetime:
        return datetime.now(zone)

    backend = AlgoliaSearchBackend(
        client,
        base_url=settings.effective_algolia_base_url,
        app_id=settings.algolia_app_id,
        api_key=settings.algolia_api_key,
        index_name=settings.algolia_index_name,
        timeout_s=settings.search_timeout_s,
    )
    policy_client = PermitPdpClient(
        client,
        pdp_url=settings.normalized_pdp_url,
        api_key=settings.permit_api_key,
        timeout_s=settings.policy_timeout_s,
    )
    gateway = AuthorizationGateway(
        policy_client, mappings=mappings, tenant=settings.permit_tenant, clock=clock
    )
    audit = AuditEmitter(
        audit_sink or LoggingAuditSink(), clock=clock, timeout_s=settings.audit_timeout_s
    )

    return SecureSearchService(
        backend, gateway, audit, batch_size=settings.authz_batch_size, clock=clock
    )


@asynccontextmanager
async def open_secure_search_service(
    settings: Settings | None = None,
) -> AsyncIterator[SecureSearchService]:
    """Own a pooled HTTP client for the lifetime of the service."""
    settings = settings or get_settings()
    configure_logging(json_format=settings.log_json)

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.search_timeout_s, connect=5.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )
    try:
        service = build_secure_search_service(client, settings)
        logger.info(
            "secure_search_initialized",
            env=settings.warden_env.value,
            index=settings.algolia_index_name,
            batch_size=settings.authz_batch_size,
            shift_timezone=settings.shift_timezone,
        )
        yield service
    finally:
        await client.aclose()
