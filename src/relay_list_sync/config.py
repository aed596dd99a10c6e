"""Immutable per-run configuration for the reconciler.

Built once per run from validated settings and discarded afterwards.
"""

from dataclasses import dataclass

from relay_list_sync.exceptions import ConfigurationError
from relay_list_sync.models import IP_LIST_KIND
from relay_list_sync.settings import RelaySyncSettings

LIST_KIND = IP_LIST_KIND
LIST_DESCRIPTION = (
    "Managed list of iCloud Private Relay egress IPs (IPv4 & IPv6) - "
    "maintained by relay-list-sync"
)


@dataclass(frozen=True)
class ReconcilerConfig:
    """Validated configuration for a single reconciliation run.

    Attributes:
        account_id: Cloudflare account identifier
        api_token: Bearer credential for the Lists API
        list_name: Name of the managed list (exact, case-sensitive)
        ipv4_source_url: IPv4 feed URL
        ipv6_source_url: IPv6 feed URL
        fetch_retries: Retries per request after the first attempt
        allow_promote_ipv6_to_slash64: Promote bare IPv6 addresses to /64
        request_timeout: HTTP timeout in seconds
        retry_initial_delay: First backoff delay in seconds
        max_list_items: Ceiling for remote list reads
        list_page_size: Page size for remote list reads
        bulk_operation_poll_interval: Bulk operation poll interval in seconds
        bulk_operation_timeout: Bulk operation timeout in seconds
        list_kind: Kind used when creating the list
        list_description: Description used when creating the list
    """

    account_id: str
    api_token: str
    list_name: str
    ipv4_source_url: str
    ipv6_source_url: str
    fetch_retries: int = 3
    allow_promote_ipv6_to_slash64: bool = False
    request_timeout: float = 30.0
    retry_initial_delay: float = 0.3
    max_list_items: int = 20000
    list_page_size: int = 500
    bulk_operation_poll_interval: float = 1.0
    bulk_operation_timeout: int = 300
    list_kind: str = LIST_KIND
    list_description: str = LIST_DESCRIPTION

    @classmethod
    def from_settings(cls, settings: RelaySyncSettings) -> "ReconcilerConfig":
        """Validate settings and build a run configuration.

        Args:
            settings: Loaded environment settings.

        Returns:
            Frozen ReconcilerConfig.

        Raises:
            ConfigurationError: If any required value is missing.
        """
        required = {
            "ACCOUNT_ID": settings.account_id,
            "API_TOKEN": settings.get_token_value(),
            "LIST_NAME": settings.list_name,
            "IPV4_LIST_SOURCE_URL": settings.ipv4_source_url,
            "IPV6_LIST_SOURCE_URL": settings.ipv6_source_url,
        }
        missing = [key for key, value in required.items() if not value]
        if missing:
            msg = f"Missing required environment variables: {', '.join(missing)}"
            raise ConfigurationError(msg, details={"missing_keys": missing})

        return cls(
            account_id=settings.account_id,
            api_token=settings.get_token_value(),
            list_name=settings.list_name,
            ipv4_source_url=settings.ipv4_source_url,
            ipv6_source_url=settings.ipv6_source_url,
            fetch_retries=settings.fetch_retries,
            allow_promote_ipv6_to_slash64=settings.allow_ipv6_promote_to_64,
            request_timeout=settings.request_timeout,
            retry_initial_delay=settings.retry_initial_delay,
            max_list_items=settings.max_list_items,
            list_page_size=settings.list_page_size,
            bulk_operation_poll_interval=settings.bulk_operation_poll_interval,
            bulk_operation_timeout=settings.bulk_operation_timeout,
        )
