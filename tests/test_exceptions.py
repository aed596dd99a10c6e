"""Tests for the relay_list_sync exception hierarchy."""

import pytest

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


class TestRelaySyncError:
    """Tests for the base exception."""

    def test_message_only(self):
        """Test error with message only."""
        error = RelaySyncError("Something failed")

        assert str(error) == "Something failed"
        assert error.details == {}
        assert error.code is None

    def test_with_code_and_details(self):
        """Test code and details are rendered."""
        error = RelaySyncError("Failed", code=500, details={"list": "relay"})

        assert str(error) == "Failed (code: 500) Details: list=relay"

    def test_to_dict(self):
        """Test JSON-serializable form."""
        error = ConfigurationError(
            "Missing required environment variables: API_TOKEN",
            details={"missing_keys": ["API_TOKEN"]},
        )

        assert error.to_dict() == {
            "error": "ConfigurationError",
            "message": "Missing required environment variables: API_TOKEN",
            "details": {"missing_keys": ["API_TOKEN"]},
        }


class TestHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_cls",
        [ConfigurationError, TransportError, FetchError, FormatError, StoreError,
         StoreFormatError, StoreAuthError, BulkOperationError],
    )
    def test_all_inherit_from_base(self, exc_cls):
        """Test every error is a RelaySyncError."""
        assert issubclass(exc_cls, RelaySyncError)

    def test_fetch_error_is_transport_error(self):
        """Test feed failures are transport failures."""
        assert issubclass(FetchError, TransportError)

    def test_store_format_error_is_both(self):
        """Test a malformed page is both a store and a format error."""
        error = StoreFormatError("Unexpected list items page shape")

        assert isinstance(error, StoreError)
        assert isinstance(error, FormatError)
        assert error.errors == []


class TestTransportError:
    """Tests for TransportError."""

    def test_attributes(self):
        """Test request context is kept."""
        error = FetchError(
            "HTTP 503",
            url="https://feeds.example.com/v4",
            status_code=503,
            body="unavailable",
            attempts=4,
        )

        assert error.url == "https://feeds.example.com/v4"
        assert error.status_code == 503
        assert error.body == "unavailable"
        assert error.attempts == 4
        assert error.code == 503

    def test_network_failure_has_no_code(self):
        """Test a network failure carries no status."""
        error = TransportError("connection refused", attempts=1)

        assert error.code is None
        assert str(error) == "connection refused"


class TestStoreError:
    """Tests for store errors."""

    def test_errors_rendered(self):
        """Test store-reported errors appear in the message."""
        error = StoreError(
            "Cloudflare API error",
            code=400,
            errors=[{"code": 10001, "message": "invalid list item"}],
        )

        assert "invalid list item" in str(error)
        assert "(code: 400)" in str(error)

    def test_bulk_operation_error(self):
        """Test bulk operation context is kept."""
        error = BulkOperationError(
            "Bulk operation failed", operation_id="op-1", status="failed"
        )

        assert error.operation_id == "op-1"
        assert error.status == "failed"
        assert isinstance(error, StoreError)
