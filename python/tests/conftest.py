"""Pytest configuration and fixtures for warden tests.

Test isolation strategy:
- No network: collaborators are in-process fakes (tests/support/fakes.py)
  or respx-mocked HTTP
- Time is pinned: every pipeline built here uses FIXED_NOW as its clock
- WARDEN_ENV=test so safe_kv raises on forbidden log keys
"""

from collections.abc import Callable
from datetime import datetime, time, timedelta, timezone

import pytest
import structlog

from tests.support.fakes import FakePolicyClient, FakeSearchBackend, RecordingAuditSink
from warden.config import clear_settings_cache
from warden.schemas.requester import Requester, Role
from warden.services.audit import AuditEmitter
from warden.services.authorization import AuthorizationGateway
from warden.services.policy.mappings import IDENTITY_MAPPINGS
from warden.services.secure_search import SecureSearchService

# Tuesday afternoon, inside a 07:00-19:00 day shift
FIXED_NOW = datetime(2026, 3, 10, 14, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_requester(**overrides) -> Requester:
    """Build a Requester with test defaults + overrides."""
    defaults = {
        "id": "user-1",
        "role": Role.ATTENDING_PHYSICIAN,
        "department": "cardiology",
        "email": "doc@hospital.test",
    }
    defaults.update(overrides)
    return Requester(**defaults)


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    """Pin WARDEN_ENV and reset cached settings around every test."""
    monkeypatch.setenv("WARDEN_ENV", "test")
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def log_sink():
    """Configure structlog to capture events into a list.

    Returns a list that will contain all emitted log event dicts.
    After the test, structlog is reset to its previous configuration.
    """
    events: list[dict] = []
    original_config = structlog.get_config()

    def capture_processor(logger, method_name, event_dict):
        events.append(event_dict.copy())
        raise structlog.DropEvent

    structlog.configure(
        processors=[capture_processor],
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    yield events

    structlog.configure(**original_config)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def physician() -> Requester:
    return make_requester()


@pytest.fixture
def nurse() -> Requester:
    return make_requester(
        id="nurse-1",
        role=Role.REGISTERED_NURSE,
        shift_start=time(7, 0),
        shift_end=time(19, 0),
        assigned_patients=("P1",),
    )


@pytest.fixture
def admin() -> Requester:
    return make_requester(id="admin-1", role=Role.HOSPITAL_ADMIN, department="administration")


@pytest.fixture
def expired_temp() -> Requester:
    return make_requester(
        id="temp-1",
        role=Role.TEMP_STAFF,
        access_expiry=FIXED_NOW - timedelta(days=1),
    )


@pytest.fixture
def backend() -> FakeSearchBackend:
    return FakeSearchBackend()


@pytest.fixture
def policy() -> FakePolicyClient:
    return FakePolicyClient(default=True)


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def gateway(policy) -> AuthorizationGateway:
    return AuthorizationGateway(policy, mappings=IDENTITY_MAPPINGS, clock=fixed_clock)


@pytest.fixture
def build_service(backend, gateway, audit_sink) -> Callable[..., SecureSearchService]:
    """Factory for a pipeline over the shared fakes."""

    def _build(batch_size: int = 10) -> SecureSearchService:
        return SecureSearchService(
            backend,
            gateway,
            AuditEmitter(audit_sink, clock=fixed_clock),
            batch_size=batch_size,
            clock=fixed_clock,
        )

    return _build


@pytest.fixture
def service(build_service) -> SecureSearchService:
    return build_service()
