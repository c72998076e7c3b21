"""
config.py: pydantic-settings Settings class.

All environment variables for the ExpertClaims portal are declared here.
The API, the CLI and the tests import `settings` from this module.

Usage:
    from expertclaims_shared.config import settings
    print(settings.supabase_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: str = Field(default="")
    supabase_service_key: str = Field(default="")
    storage_bucket: str = Field(default="case-documents")

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)
    cors_origins: str = Field(default="http://localhost:8080,http://localhost:5173")
    app_version: str = Field(default="0.1.0")
    build_timestamp: str = Field(default="")

    # -------------------------------------------------------------------------
    # Sessions and login
    # -------------------------------------------------------------------------
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    session_ttl_hours: int = Field(default=24)
    session_grace_hours: int = Field(default=24)
    otp_length: int = Field(default=6, ge=4, le=10)
    otp_ttl_seconds: int = Field(default=300)
    otp_max_attempts: int = Field(default=5)
    otp_resend_cooldown_seconds: int = Field(default=30)
    login_challenge_ttl_seconds: int = Field(default=600)
    bcrypt_rounds: int = Field(default=10)

    # -------------------------------------------------------------------------
    # Outbound webhooks (n8n)
    # -------------------------------------------------------------------------
    otp_webhook_url: str = Field(default="")
    events_webhook_url: str = Field(default="")
    webhook_token: str = Field(default="")
    webhook_timeout_seconds: float = Field(default=10.0)

    # Rate limits (requests per minute per client IP)
    rate_limit_login_per_minute: int = Field(default=10)
    rate_limit_default_per_minute: int = Field(default=600)

    # -------------------------------------------------------------------------
    # Lists
    # -------------------------------------------------------------------------
    max_page_size: int = Field(default=200)
    max_sort_rows: int = Field(default=5000)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_hours * 3600

    @property
    def session_grace_seconds(self) -> int:
        return self.session_grace_hours * 3600

    @field_validator("supabase_url", "otp_webhook_url", "events_webhook_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton, imported everywhere
# ---------------------------------------------------------------------------
settings = Settings()
