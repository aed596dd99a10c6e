"""Exception hierarchy for relay list synchronisation.

All run-level failures inherit from RelaySyncError so the trigger adapter can
handle them uniformly.

Exception Hierarchy:
    RelaySyncError
    ├── ConfigurationError (required settings missing; raised before any network call)
    ├── TransportError (network failure or non-2xx after the retry budget)
    │   └── FetchError (source feed could not be retrieved)
    ├── FormatError (payload does not have the expected shape)
    │   └── StoreFormatError (malformed list-items page, also a StoreError)
    └── StoreError (remote list store reported a failure)
        ├── StoreAuthError
        └── BulkOperationError

Invalid feed entries are not exceptions: the normalizer drops them and reports
a DropReason instead.
"""

from __future__ import annotations

from typing import Any


class RelaySyncError(Exception):
    """Base exception for relay list sync errors.

    Attributes:
        message: Human-readable error message.
        details: Additional context about the error.
        code: Machine-readable or HTTP status code (if available).
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        code: int | str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Additional context as key-value pairs.
            code: Machine-readable or HTTP status code.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.code = code

    def __str__(self) -> str:
        """Return string representation."""
        parts = [self.message]
        if self.code:
            parts.append(f"(code: {self.code})")
        if self.details:
            rendered = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"Details: {rendered}")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a JSON-serializable dictionary.

        Returns:
            Dictionary with error name, message, code and details.
        """
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(RelaySyncError):
    """Required configuration is missing or invalid.

    Example:
        >>> raise ConfigurationError(
        ...     "Missing required configuration",
        ...     details={"missing_keys": ["ACCOUNT_ID", "API_TOKEN"]},
        ... )
    """


class TransportError(RelaySyncError):
    """HTTP request failed after exhausting the retry budget.

    Attributes:
        url: Request URL.
        status_code: Last HTTP status seen (None for network failures).
        body: Last response body (truncated).
        attempts: Number of attempts made.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        attempts: int = 0,
        **kwargs: Any,
    ) -> None:
        """Initialize transport error.

        Args:
            message: Error message
            url: Request URL
            status_code: Last HTTP status code
            body: Last response body
            attempts: Number of attempts made
            **kwargs: Additional arguments for base class
        """
        kwargs.setdefault("code", status_code)
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code
        self.body = body
        self.attempts = attempts


class FetchError(TransportError):
    """A source feed could not be retrieved."""


class FormatError(RelaySyncError):
    """A payload did not have the expected shape.

    Raised when a feed declared as JSON is not a JSON array.
    """


class StoreError(RelaySyncError):
    """The remote list store reported a failure.

    Attributes:
        errors: List of error details from the Cloudflare response.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize store error.

        Args:
            message: Error message
            errors: Error details reported by the store
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.errors = errors or []

    def __str__(self) -> str:
        """Return string representation."""
        base = super().__str__()
        if self.errors:
            error_msgs = [e.get("message", str(e)) for e in self.errors]
            return f"{base} Errors: {'; '.join(error_msgs)}"
        return base


class StoreFormatError(StoreError, FormatError):
    """A list-items page was missing its result sequence."""


class StoreAuthError(StoreError):
    """API token is invalid, expired, or lacks list permissions."""


class BulkOperationError(StoreError):
    """A bulk replace failed or timed out.

    Attributes:
        operation_id: ID of the failed operation
        status: Final status of the operation
    """

    def __init__(
        self,
        message: str,
        *,
        operation_id: str | None = None,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize bulk operation error.

        Args:
            message: Error message
            operation_id: ID of the failed operation
            status: Final status of the operation
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.operation_id = operation_id
        self.status = status
