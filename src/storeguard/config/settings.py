"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Runtime
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    DEBUG: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./storeguard.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Store identity (used in outgoing notifications)
    site_name: str = "Store"
    admin_email: str = "admin@example.com"
    deletion_confirm_url: str = "https://example.com/privacy/delete-confirm"

    # Subject rights
    deletion_token_ttl_days: int = Field(default=7, ge=1)
    """Days a deletion confirmation token stays valid."""

    crm_delete_on_erasure: bool = False
    """Delete the linked CRM contact when a subject's erasure is executed."""

    subject_audit_excerpt_limit: int = Field(default=100, ge=1)
    """Most recent ledger entries included in a subject export."""

    # Cleanup runs
    cleanup_notifications_enabled: bool = False
    retention_warnings_enabled: bool = True
    retention_warning_lead_days: int = Field(default=30, ge=0)
    cleanup_hour_utc: int = Field(default=3, ge=0, le=23)
    """Hour of day (UTC) at which the external scheduler fires cleanup runs."""

    # Observability
    metrics_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
