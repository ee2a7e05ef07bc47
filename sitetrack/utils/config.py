# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings for the event log."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="postgres", description="PostgreSQL password")
    database: str = Field(default="sitetrack", description="Database name")
    schema_name: str = Field(default="sitetrack", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class ValkeySettings(BaseSettings):
    """Valkey (Redis-compatible) settings for durable session identifiers."""

    model_config = SettingsConfigDict(env_prefix="VALKEY_")

    host: str = Field(default="localhost", description="Valkey host")
    port: int = Field(default=6379, description="Valkey port")
    password: Optional[str] = Field(default=None, description="Valkey password")
    db: int = Field(default=0, description="Valkey database number")
    ssl: bool = Field(default=False, description="Use SSL/TLS connection")

    session_key_prefix: str = Field(
        default="sitetrack:session:",
        description="Key prefix reserved for stored session identifiers",
    )

    @property
    def url(self) -> str:
        """Build Valkey connection URL."""
        scheme = "rediss" if self.ssl else "redis"
        if self.password:
            return f"{scheme}://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"{scheme}://{self.host}:{self.port}/{self.db}"


class TrackingSettings(BaseSettings):
    """Tracking policy: trackable surfaces, noise floors and traffic classification.

    List values are read from the environment as JSON arrays, e.g.
    TRACKING_SEARCH_ENGINES='["google.", "bing.", "kagi."]'.
    """

    model_config = SettingsConfigDict(env_prefix="TRACKING_")

    tracked_prefixes: list[str] = Field(
        default_factory=lambda: ["/blog"],
        description="Path prefixes tracked in addition to the root path",
    )
    min_duration_ms: int = Field(
        default=150, description="Dwell times below this are discarded as noise"
    )
    click_debounce_ms: int = Field(
        default=200, description="Clicks closer together than this are dropped"
    )
    label_max_length: int = Field(default=120, description="Maximum click label length")

    search_engines: list[str] = Field(
        default_factory=lambda: [
            "google.",
            "bing.",
            "yahoo.",
            "duckduckgo.",
            "ecosia.",
            "baidu.",
            "yandex.",
        ],
        description="Referrer host fragments identifying search engines",
    )
    search_mediums: list[str] = Field(
        default_factory=lambda: ["organic", "seo"],
        description="utm_medium/utm_source values marking unpaid search campaigns",
    )
    paid_mediums: list[str] = Field(
        default_factory=lambda: ["cpc", "ppc", "paid", "paidsearch"],
        description="utm_medium values that are never counted as organic",
    )
    internal_hosts: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1"],
        description="Referrer hosts treated as direct traffic (self-referrals)",
    )

    default_range_days: int = Field(default=14, description="Default summary window in days")
    max_range_days: int = Field(default=90, description="Longest summary window in days")
    insight_min_views: int = Field(
        default=5, description="Pages need this many views to appear in insights"
    )


class ApiSettings(BaseSettings):
    """HTTP API and client transport settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(default="127.0.0.1", description="Bind host for 'sitetrack serve'")
    port: int = Field(default=8000, description="Bind port for 'sitetrack serve'")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Origins allowed to post events"
    )
    summary_token: Optional[str] = Field(
        default=None, description="Bearer token required for the summary endpoint"
    )
    base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL clients use to reach the API",
    )
    request_timeout_seconds: float = Field(
        default=5.0, description="Timeout for outgoing HTTP requests"
    )

    @property
    def ingest_url(self) -> str:
        """Full URL of the public ingestion endpoint."""
        return f"{self.base_url.rstrip('/')}/v1/public/tracking/events"

    @property
    def summary_url(self) -> str:
        """Full URL of the summary endpoint."""
        return f"{self.base_url.rstrip('/')}/v1/tracking/summary"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SITETRACK_",
        extra="ignore",
    )

    # Nested settings
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    valkey: ValkeySettings = Field(default_factory=ValkeySettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    # General settings
    repository: Literal["postgresql", "memory"] = Field(
        default="postgresql", description="Event log backend"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
