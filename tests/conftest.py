"""Pytest configuration for relay-list-sync tests."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relay_list_sync.config import ReconcilerConfig
from relay_list_sync.models import BulkOperation, BulkOperationStatus
from relay_list_sync.settings import reset_settings

# Test constants
TEST_ACCOUNT_ID = "test-account-id-12345"
TEST_API_TOKEN = "test-api-token-secret"
TEST_LIST_NAME = "icloud-private-relay"
TEST_LIST_ID = "test-list-id-67890"
TEST_OPERATION_ID = "test-operation-id-abcde"
TEST_IPV4_URL = "https://feeds.example.com/egress-ipv4.txt"
TEST_IPV6_URL = "https://feeds.example.com/egress-ipv6.txt"


@pytest.fixture(autouse=True)
def reset_settings_after_test():
    """Reset settings singleton after each test."""
    yield
    reset_settings()


@pytest.fixture
def mock_env_vars():
    """Set required environment variables for testing."""
    with patch.dict(
        os.environ,
        {
            "ACCOUNT_ID": TEST_ACCOUNT_ID,
            "API_TOKEN": TEST_API_TOKEN,
            "LIST_NAME": TEST_LIST_NAME,
            "IPV4_LIST_SOURCE_URL": TEST_IPV4_URL,
            "IPV6_LIST_SOURCE_URL": TEST_IPV6_URL,
        },
    ):
        yield


@pytest.fixture
def config():
    """Run configuration with fast polling."""
    return ReconcilerConfig(
        account_id=TEST_ACCOUNT_ID,
        api_token=TEST_API_TOKEN,
        list_name=TEST_LIST_NAME,
        ipv4_source_url=TEST_IPV4_URL,
        ipv6_source_url=TEST_IPV6_URL,
        bulk_operation_poll_interval=0.0,
    )


@pytest.fixture
def mock_cloudflare_client():
    """Create a mock async Cloudflare client."""
    with patch("relay_list_sync.store.AsyncCloudflare") as mock_cf:
        mock_instance = MagicMock()
        mock_instance.close = AsyncMock()
        mock_cf.return_value = mock_instance
        yield mock_instance


class AsyncPage:
    """Async-iterable stand-in for the SDK's auto-paginating list results."""

    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item


def make_list(list_id=TEST_LIST_ID, name=TEST_LIST_NAME, num_items=0):
    """Build an SDK-like list object."""
    return SimpleNamespace(
        id=list_id,
        name=name,
        description="Test list",
        kind="ip",
        num_items=num_items,
    )


def make_page(ips, cursor=None):
    """Build an SDK-like list-items page."""
    return SimpleNamespace(
        result=[SimpleNamespace(ip=ip) for ip in ips],
        result_info=SimpleNamespace(cursors=SimpleNamespace(after=cursor)),
    )


class FakeFetcher:
    """Source fetcher serving fixed entries per URL."""

    def __init__(self, feeds):
        self.feeds = feeds
        self.calls = []

    async def fetch_list(self, url):
        self.calls.append(url)
        feed = self.feeds[url]
        if isinstance(feed, Exception):
            raise feed
        return list(feed)


class FakeStore:
    """In-memory list store that records writes."""

    def __init__(self, items=None, list_id=TEST_LIST_ID):
        self.items = list(items or [])
        self.list_id = list_id
        self.replace_calls = []
        self.replace_error = None

    async def get_or_create_list(self, list_name):
        return self.list_id

    async def get_all_items(self, list_id, expected_count_hint=None):
        return list(self.items)

    async def replace_all_items(self, list_id, items):
        if self.replace_error is not None:
            raise self.replace_error
        items = list(items)
        self.replace_calls.append(items)
        self.items = items
        return BulkOperation(id=TEST_OPERATION_ID, status=BulkOperationStatus.COMPLETED)
