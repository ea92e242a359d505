"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _validate_base_url(v: str) -> str:
    parts = urlsplit(v)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Invalid base URL {v!r}: must be an absolute http(s) URL"
        raise ValueError(msg)
    return v.rstrip("/")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg or sqlite+aiosqlite)",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # JWT
    jwt_secret_key: str = Field(min_length=32, description="Secret key for signing JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(
        default=60,
        description="Service token expiration in minutes",
        gt=0,
    )

    # Link rewriting: public base URLs
    website_url: str = Field(
        default="http://localhost:20000",
        description="Public website base URL",
    )
    api_router_public_url: str = Field(
        default="http://localhost:23200/v1",
        description="Public API gateway base URL, including any version path prefix",
    )
    download_service_url: str = Field(
        default="http://localhost:23600",
        description="Download service base URL",
    )
    code_list_api_url: str = Field(
        default="http://localhost:23200/v1",
        description="Public base URL for code-list links",
    )
    import_api_url: str = Field(
        default="http://localhost:21800",
        description="Import service base URL (instance job links)",
    )
    dataset_api_url: str = Field(
        default="http://localhost:22000",
        description="Internal host used when storing links on new documents",
    )

    @field_validator(
        "website_url",
        "api_router_public_url",
        "download_service_url",
        "code_list_api_url",
        "import_api_url",
        "dataset_api_url",
    )
    @classmethod
    def validate_base_urls(cls, v: str) -> str:
        return _validate_base_url(v)

    # Downloads event (Kafka)
    kafka_enabled: bool = Field(
        default=False,
        description="Emit generate-downloads events to Kafka on publish",
    )
    kafka_addr: str = Field(
        default="localhost:9092",
        description="Comma-separated list of Kafka bootstrap servers",
    )
    generate_downloads_topic: str = Field(
        default="filter-job-submitted",
        description="Topic receiving generate-downloads events",
    )

    @property
    def kafka_addr_list(self) -> list[str]:
        """Parse Kafka bootstrap servers into a list."""
        if not self.kafka_addr.strip():
            return []
        return [a.strip() for a in self.kafka_addr.split(",") if a.strip()]

    # Cache purge (Cloudflare)
    cloudflare_enabled: bool = Field(
        default=False,
        description="Purge CDN cache prefixes on publish",
    )
    cloudflare_api_token: str | None = Field(
        default=None,
        description="Cloudflare API token with cache purge permission",
    )
    cloudflare_zone_id: str | None = Field(
        default=None,
        description="Cloudflare zone ID",
    )
    cloudflare_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Cloudflare API base URL (override for a local stub)",
    )
    cloudflare_timeout: float = Field(
        default=10.0,
        description="Cloudflare request timeout in seconds",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # API
    api_prefix: str = Field(
        default="/v1",
        description="API version prefix",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
