"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Empty email_api_key disables outbound email (sends are logged as failed)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://portal:portal@db:5432/portal"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Auth: access tokens are issued by the identity provider, verified here
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Email (Resend REST API)
    email_api_key: str = ""
    email_base_url: str = "https://api.resend.com"
    email_from: str = "Course Portal <noreply@example.com>"
    email_max_retries: int = 3
    email_base_delay_ms: int = 500
    email_max_delay_ms: int = 10_000
    email_timeout_seconds: int = 15
    admin_notification_email: str = ""
    contact_email: str = "info@example.com"

    # Uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    # Rate limiting (requests per window, per client IP)
    rate_limit_contact_requests: int = 5
    rate_limit_enrollments: int = 10
    rate_limit_window_seconds: int = 900

    # Users
    max_user_restorations: int = 3

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
