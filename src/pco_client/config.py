"""Configuration settings for the PCO client."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.planningcenteronline.com/people/v2"
DEFAULT_TOKEN_URL = "https://api.planningcenteronline.com/oauth/token"

# Hooks may be plain functions or coroutines; both are accepted.
RefreshHook = Callable[[Any], Awaitable[None] | None]
RefreshFailureHook = Callable[[Exception], Awaitable[None] | None]
EventHook = Callable[[Any], Awaitable[None] | None]


class RetryConfig(BaseModel):
    """Configuration for retry and backoff.

    Immutable once a client has been built from it.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Retry transient failures")
    max_retries: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Maximum retries per request (attempts = max_retries + 1)",
    )
    base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Base backoff delay in milliseconds",
    )
    max_delay_ms: int = Field(
        default=30000,
        ge=0,
        description="Upper bound for a single backoff delay in milliseconds",
    )
    backoff: Literal["linear", "exponential"] = Field(
        default="exponential",
        description="Backoff strategy",
    )

    @property
    def base_delay(self) -> float:
        """Base delay in seconds."""
        return self.base_delay_ms / 1000

    @property
    def max_delay(self) -> float:
        """Maximum delay in seconds."""
        return self.max_delay_ms / 1000


class RateLimitConfig(BaseModel):
    """Configuration for rate limit tracking."""

    track_from_headers: bool = Field(
        default=True,
        description="Passively track limits from response headers",
    )
    preemptive_throttling: bool = Field(
        default=False,
        description="Wait before sending when the tracked window is exhausted",
    )


class PaginationConfig(BaseModel):
    """Configuration for link-based pagination."""

    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per page",
    )
    max_pages: int = Field(
        default=1000,
        ge=1,
        description="Safety cap on pages fetched in one traversal",
    )
    page_delay_ms: int = Field(
        default=50,
        ge=0,
        description="Pause between page requests in milliseconds",
    )


class BatchConfig(BaseModel):
    """Configuration for batch execution."""

    max_concurrency: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum operations in flight at once",
    )


class CachingConfig(BaseModel):
    """Configuration handed to the external cache collaborator.

    The access layer itself keeps no cache.
    """

    field_definitions: bool = Field(default=True, description="Cache field definitions")
    ttl_ms: int = Field(default=300_000, ge=0, description="Entry time to live (ms)")
    max_size: int = Field(default=1000, ge=0, description="Maximum cached entries")


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


# -----------------------------------------------------------------------------
# Client configuration
# -----------------------------------------------------------------------------
class PersonalAccessTokenAuth(BaseModel):
    """Static personal access token (``app_id:secret`` or a bare token)."""

    type: Literal["personal_access_token"] = "personal_access_token"
    personal_access_token: str = Field(min_length=1)


class OAuthAuth(BaseModel):
    """OAuth access/refresh token pair with persistence hooks."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["oauth"] = "oauth"
    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    on_refresh: RefreshHook | None = None
    on_refresh_failure: RefreshFailureHook | None = None
    token_url: str = DEFAULT_TOKEN_URL
    client_id: str | None = None
    client_secret: str | None = None


AuthConfig = Annotated[
    PersonalAccessTokenAuth | OAuthAuth,
    Field(discriminator="type"),
]


class EventHandlersConfig(BaseModel):
    """Event handlers bound to the client's event bus at construction."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    on_error: EventHook | None = None
    on_auth_failure: EventHook | None = None
    on_request_start: EventHook | None = None
    on_request_complete: EventHook | None = None
    on_rate_limit: EventHook | None = None


class ClientConfig(BaseModel):
    """Everything a PcoClient needs, in one immutable-by-convention object."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    auth: AuthConfig
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = Field(default=30000, ge=1, description="Per-attempt timeout (ms)")
    headers: dict[str, str] = Field(default_factory=dict)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    caching: CachingConfig = Field(default_factory=CachingConfig)
    events: EventHandlersConfig = Field(default_factory=EventHandlersConfig)

    @property
    def timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        return self.timeout_ms / 1000

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ClientConfig:
        """Build a client configuration from environment settings.

        OAuth tokens win over app id/secret when both are present.

        Raises:
            ConfigurationError: If no credentials are configured.
        """
        from pco_client.api.exceptions import ConfigurationError

        settings = settings or get_settings()

        auth: PersonalAccessTokenAuth | OAuthAuth
        if settings.pco_access_token and settings.pco_refresh_token:
            auth = OAuthAuth(
                access_token=settings.pco_access_token,
                refresh_token=settings.pco_refresh_token,
                client_id=settings.pco_app_id or None,
                client_secret=settings.pco_secret or None,
            )
        elif settings.personal_access_token:
            auth = PersonalAccessTokenAuth(
                personal_access_token=settings.personal_access_token
            )
        else:
            raise ConfigurationError(
                "PCO credentials required. Set PCO_APP_ID and PCO_SECRET, "
                "or PCO_ACCESS_TOKEN and PCO_REFRESH_TOKEN."
            )

        return cls(
            auth=auth,
            base_url=settings.pco_base_url,
            timeout_ms=settings.pco_timeout_ms,
            retry=settings.retry,
            rate_limit=settings.rate_limit,
            pagination=settings.pagination,
            batch=settings.batch,
            caching=settings.caching,
        )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # PCO API
    # --------------------------------------------------------------------------
    pco_app_id: str = Field(default="", description="Personal access token app id")
    pco_secret: str = Field(default="", description="Personal access token secret")
    pco_access_token: str = Field(default="", description="OAuth access token")
    pco_refresh_token: str = Field(default="", description="OAuth refresh token")
    pco_base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    pco_timeout_ms: int = Field(default=30000, ge=1, description="Request timeout (ms)")

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Resilience
    # --------------------------------------------------------------------------
    retry: RetryConfig = Field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    caching: CachingConfig = Field(default_factory=CachingConfig)

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @property
    def personal_access_token(self) -> str:
        """``app_id:secret`` when both halves are set, else empty."""
        if self.pco_app_id and self.pco_secret:
            return f"{self.pco_app_id}:{self.pco_secret}"
        return ""


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
