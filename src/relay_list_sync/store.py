"""Cloudflare Lists client used as the remote list store.

Uses the official Cloudflare Python SDK (async client). The SDK's own retry
with exponential backoff is the transport for store calls.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import Any

from cloudflare import AsyncCloudflare
from cloudflare._exceptions import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AuthenticationError,
    PermissionDeniedError,
)

from relay_list_sync.config import ReconcilerConfig
from relay_list_sync.exceptions import (
    BulkOperationError,
    StoreAuthError,
    StoreError,
    StoreFormatError,
    TransportError,
)
from relay_list_sync.models import (
    BulkOperation,
    BulkOperationStatus,
    IP_LIST_KIND,
    ListItem,
    RemoteList,
)

logger = logging.getLogger(__name__)


def _field(obj: Any, name: str) -> Any:
    """Read an attribute from an SDK model or a key from a plain dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def next_cursor(page: Any) -> str | None:
    """Extract the next-page cursor from a list-items page.

    Checks ``result_info.cursor``, then ``result_info.cursors.after`` and
    ``result_info.cursors.next``.

    Args:
        page: Page returned by the Lists API.

    Returns:
        Cursor string, or None on the last page.
    """
    info = _field(page, "result_info")
    cursor = _field(info, "cursor")
    if not cursor:
        cursors = _field(info, "cursors")
        cursor = _field(cursors, "after") or _field(cursors, "next")
    return cursor if isinstance(cursor, str) and cursor else None


class ListStoreClient:
    """Client for the managed Cloudflare IP list.

    Example:
        ```python
        store = ListStoreClient(config)
        list_id = await store.get_or_create_list("icloud-private-relay")
        current = await store.get_all_items(list_id)
        await store.replace_all_items(list_id, ["203.0.113.0/24"])
        ```
    """

    def __init__(
        self,
        config: ReconcilerConfig,
        client: AsyncCloudflare | None = None,
    ) -> None:
        """Initialize the list store client.

        Args:
            config: Validated run configuration.
            client: Optional SDK client. If not provided, one is created.
        """
        self.config = config
        self._account_id = config.account_id
        self._client = client or AsyncCloudflare(
            api_token=config.api_token,
            max_retries=config.fetch_retries,
            timeout=config.request_timeout,
        )

        logger.debug(
            "Initialized list store client for account %s",
            self._account_id[:8] + "...",
        )

    async def close(self) -> None:
        """Close the underlying HTTP connections."""
        await self._client.close()

    def _handle_api_error(self, error: Exception) -> None:
        """Convert SDK exceptions to store exceptions.

        Args:
            error: Exception from the Cloudflare SDK.

        Raises:
            TransportError: For connection failures after SDK retries.
            StoreAuthError: For authentication/permission failures.
            StoreError: For other API errors.
        """
        if isinstance(error, (AuthenticationError, PermissionDeniedError)):
            msg = "Authentication failed. Check API_TOKEN permissions."
            raise StoreAuthError(
                msg, code=getattr(error, "status_code", None)
            ) from error

        if isinstance(error, APIConnectionError):
            msg = f"Connection error: {error}"
            raise TransportError(msg) from error

        if isinstance(error, APIStatusError):
            errors = _field(getattr(error, "body", None), "errors")
            raise StoreError(
                str(error),
                code=getattr(error, "status_code", None),
                errors=errors if isinstance(errors, list) else None,
            ) from error

        raise StoreError(str(error)) from error

    # =========================================================================
    # List Operations
    # =========================================================================

    async def list_lists(self) -> list[RemoteList]:
        """List all lists in the account.

        Returns:
            List of RemoteList objects.

        Raises:
            StoreError: If the API request fails.
        """
        try:
            lists = []
            async for item in self._client.rules.lists.list(
                account_id=self._account_id
            ):
                lists.append(RemoteList.from_sdk(item))
            logger.debug("Listed %d lists", len(lists))
            return lists
        except APIError as e:
            self._handle_api_error(e)
            raise

    async def find_list(self, name: str) -> RemoteList | None:
        """Find a list by exact, case-sensitive name.

        Args:
            name: List name.

        Returns:
            RemoteList if found, None otherwise.
        """
        for ip_list in await self.list_lists():
            if ip_list.name == name:
                return ip_list
        return None

    async def create_list(
        self,
        name: str,
        kind: str = IP_LIST_KIND,
        description: str | None = None,
    ) -> RemoteList:
        """Create a new list.

        Args:
            name: List name (must be unique per account).
            kind: Type of list.
            description: Optional description.

        Returns:
            The created RemoteList.

        Raises:
            StoreError: If the API request fails.
        """
        try:
            response = await self._client.rules.lists.create(
                account_id=self._account_id,
                kind=kind,
                name=name,
                description=description,
            )
        except APIError as e:
            self._handle_api_error(e)
            raise

        if response is None or not _field(response, "id"):
            msg = f"Create list '{name}' returned no list id"
            raise StoreError(msg)

        logger.info("Created list '%s' with ID %s", name, response.id)
        return RemoteList.from_sdk(response)

    async def get_or_create_list(self, list_name: str) -> str:
        """Return the id of the named list, creating it if missing.

        Args:
            list_name: Exact list name.

        Returns:
            List id.
        """
        existing = await self.find_list(list_name)
        if existing:
            logger.debug("Found existing list '%s' (%s)", list_name, existing.id)
            return existing.id

        created = await self.create_list(
            name=list_name,
            kind=self.config.list_kind,
            description=self.config.list_description,
        )
        return created.id

    # =========================================================================
    # Item Operations
    # =========================================================================

    async def _get_items_page(
        self, list_id: str, per_page: int, cursor: str | None
    ) -> Any:
        params: dict[str, Any] = {
            "list_id": list_id,
            "account_id": self._account_id,
            "per_page": per_page,
        }
        if cursor:
            params["cursor"] = cursor
        try:
            return await self._client.rules.lists.items.list(**params)
        except APIError as e:
            self._handle_api_error(e)
            raise

    async def get_all_items(
        self,
        list_id: str,
        expected_count_hint: int | None = None,
    ) -> list[str]:
        """Read the full list through cursor pagination.

        Stops when the cursor is absent, a page is empty, or the ceiling
        (``expected_count_hint`` or ``max_list_items``) is reached. The
        ceiling is never exceeded.

        Args:
            list_id: The list identifier.
            expected_count_hint: Optional ceiling override.

        Returns:
            IP strings in page order.

        Raises:
            StoreFormatError: If a page has no result sequence.
            StoreError: If the API request fails.
        """
        ceiling = expected_count_hint or self.config.max_list_items
        items: list[str] = []
        cursor: str | None = None
        pages = 0

        while len(items) < ceiling:
            per_page = min(self.config.list_page_size, ceiling - len(items))
            page = await self._get_items_page(list_id, per_page, cursor)
            pages += 1

            result = _field(page, "result")
            if not isinstance(result, list):
                msg = f"Unexpected list items page shape for list {list_id}"
                raise StoreFormatError(msg, details={"page": pages})

            page_items = []
            for entry in result:
                ip = _field(entry, "ip")
                if ip is None:
                    continue
                ip = str(ip).strip()
                if ip:
                    page_items.append(ip)

            remaining = ceiling - len(items)
            items.extend(page_items[:remaining])
            logger.debug(
                "Page %d of list %s: %d items (%d total)",
                pages,
                list_id,
                len(page_items),
                len(items),
            )

            if len(items) >= ceiling:
                logger.warning(
                    "Reached item ceiling (%d) reading list %s, stopping",
                    ceiling,
                    list_id,
                )
                break

            cursor = next_cursor(page)
            if not cursor or not page_items:
                break

        return items

    async def replace_all_items(
        self,
        list_id: str,
        items: Iterable[str],
    ) -> BulkOperation:
        """Replace the full contents of a list.

        Args:
            list_id: The list identifier.
            items: CIDR strings that make up the new contents.

        Returns:
            The completed BulkOperation.

        Raises:
            BulkOperationError: If the operation fails or times out.
            StoreError: If the API request fails.
        """
        body = [ListItem(ip=ip).to_api_dict() for ip in items]
        try:
            response = await self._client.rules.lists.items.update(
                list_id=list_id,
                account_id=self._account_id,
                body=body,
            )
        except APIError as e:
            self._handle_api_error(e)
            raise

        operation_id = _field(response, "operation_id")
        if not operation_id:
            msg = f"Replace of list {list_id} returned no operation id"
            raise StoreError(msg)

        logger.info(
            "Started replace operation %s with %d items for list %s",
            operation_id,
            len(body),
            list_id,
        )
        return await self._wait_for_bulk_operation(operation_id)

    # =========================================================================
    # Bulk Operation Helpers
    # =========================================================================

    async def get_bulk_operation_status(self, operation_id: str) -> BulkOperation:
        """Get the status of a bulk operation.

        Args:
            operation_id: The operation identifier.

        Returns:
            BulkOperation with current status.
        """
        try:
            response = await self._client.rules.lists.bulk_operations.get(
                operation_id=operation_id,
                account_id=self._account_id,
            )
        except APIError as e:
            self._handle_api_error(e)
            raise

        return BulkOperation(
            id=response.id,
            status=BulkOperationStatus(response.status),
            error=_field(response, "error"),
            completed=_field(response, "completed"),
        )

    async def _wait_for_bulk_operation(self, operation_id: str) -> BulkOperation:
        """Poll a bulk operation until it finishes.

        Raises:
            BulkOperationError: If the operation fails or outlives
                ``bulk_operation_timeout``.
        """
        deadline = time.monotonic() + self.config.bulk_operation_timeout
        polls = 0

        while True:
            operation = await self.get_bulk_operation_status(operation_id)
            polls += 1

            if operation.status.finished:
                break
            if time.monotonic() >= deadline:
                msg = (
                    f"Replace operation {operation_id} still "
                    f"{operation.status.value} after "
                    f"{self.config.bulk_operation_timeout}s"
                )
                raise BulkOperationError(
                    msg, operation_id=operation_id, status="timeout"
                )

            logger.debug(
                "Replace operation %s is %s (poll %d)",
                operation_id,
                operation.status.value,
                polls,
            )
            await asyncio.sleep(self.config.bulk_operation_poll_interval)

        if operation.status is BulkOperationStatus.FAILED:
            msg = f"Replace operation {operation_id} failed: {operation.error}"
            raise BulkOperationError(
                msg, operation_id=operation_id, status=operation.status.value
            )

        logger.debug("Replace operation %s completed after %d polls", operation_id, polls)
        return operation
