"""Application settings loaded from environment variables.

Environment Configuration:
    WARDEN_ENV: Deployment environment (local | test | staging | prod)

Search Backend (Algolia):
    ALGOLIA_APP_ID: Algolia application ID (required in staging/prod)
    ALGOLIA_API_KEY: Search-only API key (required in staging/prod)
    ALGOLIA_INDEX_NAME: Index holding the clinical records
    ALGOLIA_BASE_URL: Optional host override (defaults to the app's DSN host)

Policy Decision Service (Permit PDP):
    PERMIT_PDP_URL: Base URL of the policy decision point
    PERMIT_API_KEY: Bearer key for the PDP (required in staging/prod)
    PERMIT_TENANT: Tenant key sent with every resource

Pipeline Tuning:
    AUTHZ_BATCH_SIZE: Concurrent policy checks per window (default 10)
    POLICY_TIMEOUT_S: Per-check timeout against the PDP
    SEARCH_TIMEOUT_S: Timeout for search backend calls
    SHIFT_TIMEZONE: IANA zone that shift hours are expressed in
"""

from enum import Enum
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - AUTHZ_BATCH_SIZE, POLICY_TIMEOUT_S and SEARCH_TIMEOUT_S must be positive
    - SHIFT_TIMEZONE must name a known IANA zone
    - Algolia credentials and PERMIT_API_KEY are required in staging and prod only
    """

    warden_env: Environment = Field(default=Environment.LOCAL, alias="WARDEN_ENV")

    # Search backend
    algolia_app_id: str | None = Field(default=None, alias="ALGOLIA_APP_ID")
    algolia_api_key: str | None = Field(default=None, alias="ALGOLIA_API_KEY")
    algolia_index_name: str = Field(default="hospital_patient_records", alias="ALGOLIA_INDEX_NAME")
    algolia_base_url: str | None = Field(default=None, alias="ALGOLIA_BASE_URL")

    # Policy decision service
    permit_pdp_url: str = Field(default="http://localhost:7766", alias="PERMIT_PDP_URL")
    permit_api_key: str | None = Field(default=None, alias="PERMIT_API_KEY")
    permit_tenant: str = Field(default="default", alias="PERMIT_TENANT")

    # Pipeline tuning
    authz_batch_size: int = Field(default=10, alias="AUTHZ_BATCH_SIZE")
    policy_timeout_s: float = Field(default=5.0, alias="POLICY_TIMEOUT_S")
    search_timeout_s: float = Field(default=10.0, alias="SEARCH_TIMEOUT_S")
    audit_timeout_s: float = Field(default=2.0, alias="AUDIT_TIMEOUT_S")
    shift_timezone: str = Field(default="UTC", alias="SHIFT_TIMEZONE")

    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator(
        "authz_batch_size", "policy_timeout_s", "search_timeout_s", "audit_timeout_s"
    )
    @classmethod
    def validate_positive(cls, value, info):
        if value <= 0:
            raise ValueError(f"{info.field_name.upper()} must be > 0")
        return value

    @field_validator("shift_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"SHIFT_TIMEZONE is not a known timezone: {value}") from None
        return value

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure upstream credentials are set outside local/test."""
        if self.warden_env in (Environment.STAGING, Environment.PROD):
            missing = []
            if not self.algolia_app_id:
                missing.append("ALGOLIA_APP_ID")
            if not self.algolia_api_key:
                missing.append("ALGOLIA_API_KEY")
            if not self.permit_api_key:
                missing.append("PERMIT_API_KEY")
            if missing:
                raise ValueError(
                    f"Missing required settings for WARDEN_ENV={self.warden_env.value}: "
                    f"{', '.join(missing)}"
                )

        return self

    @property
    def shift_zone(self) -> ZoneInfo:
        """Timezone object for evaluating shift hours."""
        return ZoneInfo(self.shift_timezone)

    @property
    def effective_algolia_base_url(self) -> str:
        """Return the Algolia host, falling back to the application's DSN host."""
        if self.algolia_base_url:
            return self.algolia_base_url.rstrip("/")
        return f"https://{self.algolia_app_id}-dsn.algolia.net"

    @property
    def normalized_pdp_url(self) -> str:
        """Return the PDP URL with trailing slash stripped."""
        return self.permit_pdp_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
