"""Relay list sync package.

Keeps a Cloudflare IP list in step with the iCloud Private Relay egress
ranges published as separate IPv4 and IPv6 feeds.

Example:
    ```python
    import asyncio

    from relay_list_sync import run_once

    result = asyncio.run(run_once())  # reads ACCOUNT_ID, API_TOKEN, ... from env
    print(result.status, result.added, result.removed)
    ```

Normalizer Example:
    ```python
    from relay_list_sync import normalize

    normalize("203.0.113.5")  # '203.0.113.5/32'
    normalize("2001:db8::", allow_promote_ipv6_to_slash64=True)  # '2001:db8::/64'
    ```
"""

__version__ = "0.1.0"

from relay_list_sync.config import ReconcilerConfig
from relay_list_sync.exceptions import (
    BulkOperationError,
    ConfigurationError,
    FetchError,
    FormatError,
    RelaySyncError,
    StoreAuthError,
    StoreError,
    StoreFormatError,
    TransportError,
)
from relay_list_sync.normalizer import (
    AddressFamily,
    DropReason,
    ParsedCIDR,
    classify_entry,
    normalize,
    parse_cidr,
)
from relay_list_sync.reconciler import (
    Reconciler,
    RunResult,
    RunState,
    RunStatus,
    compute_diff,
    sets_equal,
)
from relay_list_sync.settings import (
    RelaySyncSettings,
    get_settings,
    reset_settings,
)
from relay_list_sync.sources import SourceFetcher, fetch_list
from relay_list_sync.store import ListStoreClient
from relay_list_sync.worker import run_once, trigger

__all__ = [
    "AddressFamily",
    "BulkOperationError",
    "ConfigurationError",
    "DropReason",
    "FetchError",
    "FormatError",
    "ListStoreClient",
    "ParsedCIDR",
    "Reconciler",
    "ReconcilerConfig",
    "RelaySyncError",
    "RelaySyncSettings",
    "RunResult",
    "RunState",
    "RunStatus",
    "SourceFetcher",
    "StoreAuthError",
    "StoreError",
    "StoreFormatError",
    "TransportError",
    "classify_entry",
    "compute_diff",
    "fetch_list",
    "get_settings",
    "normalize",
    "parse_cidr",
    "reset_settings",
    "run_once",
    "sets_equal",
    "trigger",
]
