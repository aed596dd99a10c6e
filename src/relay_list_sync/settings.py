"""Relay list sync configuration settings.

Environment-based configuration for the Cloudflare account, target list and
upstream feeds. Variable names match the deployment environment of the worker.
"""


from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelaySyncSettings(BaseSettings):
    """Configuration for the relay list sync worker.

    All settings can be configured via environment variables or .env file.
    Required values are optional here so that a missing value surfaces as a
    ConfigurationError at run time instead of failing on import.

    Attributes:
        account_id: Cloudflare account identifier
        api_token: API token with Account Filter Lists edit permission
        list_name: Name of the managed Cloudflare IP list
        ipv4_source_url: Feed URL for IPv4 ranges
        ipv6_source_url: Feed URL for IPv6 ranges
        fetch_retries: Retries per HTTP request after the first attempt
        allow_ipv6_promote_to_64: Promote bare IPv6 addresses to /64
        request_timeout: HTTP request timeout in seconds
        retry_initial_delay: First backoff delay in seconds (doubles per retry)
        max_list_items: Safety ceiling when reading the remote list
        list_page_size: Items requested per page from the remote list
        bulk_operation_poll_interval: Seconds between bulk operation checks
        bulk_operation_timeout: Maximum seconds to wait for a bulk operation
        sync_interval_seconds: Optional in-process schedule for the web app
        cron_schedule: Schedule description reported by /info
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Required at run time
    account_id: str | None = Field(
        default=None,
        alias="ACCOUNT_ID",
        description="Cloudflare account identifier",
    )
    api_token: SecretStr | None = Field(
        default=None,
        alias="API_TOKEN",
        description="Cloudflare API token (bearer credential)",
    )
    list_name: str | None = Field(
        default=None,
        alias="LIST_NAME",
        description="Name of the managed IP list",
    )
    ipv4_source_url: str | None = Field(
        default=None,
        alias="IPV4_LIST_SOURCE_URL",
        description="URL returning IPv4 ranges (JSON array or text)",
    )
    ipv6_source_url: str | None = Field(
        default=None,
        alias="IPV6_LIST_SOURCE_URL",
        description="URL returning IPv6 ranges (JSON array or text)",
    )

    # Normalization
    allow_ipv6_promote_to_64: bool = Field(
        default=False,
        alias="ALLOW_IPV6_PROMOTE_TO_64",
        description="Promote IPv6 entries without a prefix to /64",
    )

    # Transport
    fetch_retries: int = Field(
        default=3,
        alias="FETCH_RETRIES",
        description="Retries per request after the first attempt",
    )
    request_timeout: float = Field(
        default=30.0,
        alias="REQUEST_TIMEOUT",
        description="HTTP request timeout in seconds",
    )
    retry_initial_delay: float = Field(
        default=0.3,
        alias="RETRY_INITIAL_DELAY",
        description="Initial backoff delay in seconds",
    )

    # List store
    max_list_items: int = Field(
        default=20000,
        alias="MAX_LIST_ITEMS",
        description="Upper bound on items read from the remote list",
    )
    list_page_size: int = Field(
        default=500,
        alias="LIST_PAGE_SIZE",
        description="Items per page when reading the remote list",
    )
    bulk_operation_poll_interval: float = Field(
        default=1.0,
        alias="BULK_POLL_INTERVAL",
        description="Seconds between bulk operation status checks",
    )
    bulk_operation_timeout: int = Field(
        default=300,
        alias="BULK_TIMEOUT",
        description="Maximum seconds to wait for bulk operations",
    )

    # Scheduling
    sync_interval_seconds: int | None = Field(
        default=None,
        alias="SYNC_INTERVAL_SECONDS",
        description="Run the reconciler every N seconds inside the web app",
    )
    cron_schedule: str = Field(
        default="external",
        alias="CRON_SCHEDULE",
        description="Human-readable trigger schedule reported by /info",
    )

    @field_validator("fetch_retries")
    @classmethod
    def validate_fetch_retries(cls, v: int) -> int:
        """Validate retry count is not negative."""
        if v < 0:
            msg = "FETCH_RETRIES must be >= 0"
            raise ValueError(msg)
        return v

    @field_validator("list_page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        """Validate page size is within what the Lists API accepts."""
        if not 1 <= v <= 500:
            msg = "LIST_PAGE_SIZE must be between 1 and 500"
            raise ValueError(msg)
        return v

    @field_validator("max_list_items", "sync_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int | None) -> int | None:
        """Validate limits and intervals are positive."""
        if v is not None and v <= 0:
            msg = "value must be positive"
            raise ValueError(msg)
        return v

    def get_token_value(self) -> str | None:
        """Get the API token as a plain string.

        Returns:
            The API token value, or None if unset.
        """
        if self.api_token is None:
            return None
        return self.api_token.get_secret_value()


_settings_instance: RelaySyncSettings | None = None


def get_settings() -> RelaySyncSettings:
    """Get default settings (singleton, reads from environment).

    Returns:
        RelaySyncSettings instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = RelaySyncSettings()
    return _settings_instance


def reset_settings() -> None:
    """Reset singleton (for testing)."""
    global _settings_instance
    _settings_instance = None
