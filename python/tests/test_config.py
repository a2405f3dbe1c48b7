"""Tests for application configuration."""

from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from warden.config import Environment, Settings, clear_settings_cache, get_settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {"WARDEN_ENV": "test"}
    defaults.update(overrides)
    return Settings(**defaults)


class TestDefaults:
    def test_pipeline_defaults(self):
        s = _make_settings()
        assert s.warden_env == Environment.TEST
        assert s.authz_batch_size == 10
        assert s.policy_timeout_s == 5.0
        assert s.search_timeout_s == 10.0
        assert s.audit_timeout_s == 2.0
        assert s.algolia_index_name == "hospital_patient_records"
        assert s.permit_tenant == "default"
        assert s.shift_zone == ZoneInfo("UTC")

    def test_algolia_host_derived_from_app_id(self):
        s = _make_settings(ALGOLIA_APP_ID="APP123")
        assert s.effective_algolia_base_url == "https://APP123-dsn.algolia.net"

    def test_algolia_host_override_wins(self):
        s = _make_settings(ALGOLIA_APP_ID="APP123", ALGOLIA_BASE_URL="http://localhost:9200/")
        assert s.effective_algolia_base_url == "http://localhost:9200"

    def test_pdp_url_trailing_slash_stripped(self):
        s = _make_settings(PERMIT_PDP_URL="http://pdp:7766/")
        assert s.normalized_pdp_url == "http://pdp:7766"


class TestValidation:
    @pytest.mark.parametrize(
        "name", ["AUTHZ_BATCH_SIZE", "POLICY_TIMEOUT_S", "SEARCH_TIMEOUT_S", "AUDIT_TIMEOUT_S"]
    )
    def test_non_positive_values_rejected(self, name):
        with pytest.raises(ValidationError, match=name):
            _make_settings(**{name: 0})

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError, match="SHIFT_TIMEZONE"):
            _make_settings(SHIFT_TIMEZONE="Mars/Olympus_Mons")

    def test_known_timezone_accepted(self):
        s = _make_settings(SHIFT_TIMEZONE="America/New_York")
        assert s.shift_zone == ZoneInfo("America/New_York")

    def test_prod_requires_credentials(self):
        with pytest.raises(ValidationError, match="ALGOLIA_APP_ID") as exc_info:
            _make_settings(WARDEN_ENV="prod")
        assert "PERMIT_API_KEY" in str(exc_info.value)

    def test_prod_with_credentials_accepted(self):
        s = _make_settings(
            WARDEN_ENV="prod",
            ALGOLIA_APP_ID="APP",
            ALGOLIA_API_KEY="search-key",
            PERMIT_API_KEY="permit-key",
        )
        assert s.warden_env == Environment.PROD


class TestSettingsCache:
    def test_get_settings_reads_environment(self, monkeypatch):
        monkeypatch.setenv("AUTHZ_BATCH_SIZE", "4")
        clear_settings_cache()

        assert get_settings().authz_batch_size == 4
        assert get_settings() is get_settings()
