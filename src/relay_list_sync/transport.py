"""HTTP transport with exponential-backoff retry.

Network failures and non-2xx responses are retried; after ``retries`` extra
attempts the last failure is raised as a TransportError.
"""

import asyncio
import logging
from typing import Any

import httpx

from relay_list_sync.exceptions import TransportError

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 3
DEFAULT_INITIAL_DELAY = 0.3
_BODY_PREVIEW_CHARS = 500


def backoff_delay(attempt: int, initial_delay: float = DEFAULT_INITIAL_DELAY) -> float:
    """Delay before the next attempt after ``attempt`` failures (1-based)."""
    return initial_delay * (2 ** (attempt - 1))


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retries: int = DEFAULT_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    error_cls: type[TransportError] = TransportError,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying on network errors and non-2xx statuses.

    Args:
        client: Shared async HTTP client.
        method: HTTP method.
        url: Request URL.
        retries: Retries after the first attempt.
        initial_delay: First backoff delay in seconds, doubled per retry.
        error_cls: TransportError subclass raised when retries are exhausted.
        **kwargs: Passed through to ``client.request``.

    Returns:
        The first successful response.

    Raises:
        TransportError: If every attempt failed.
    """
    attempt = 0
    while True:
        status_code: int | None = None
        body: str | None = None
        cause: Exception | None = None
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            reason = f"{type(e).__name__}: {e}"
            cause = e
        else:
            if response.is_success:
                return response
            status_code = response.status_code
            body = response.text[:_BODY_PREVIEW_CHARS]
            reason = f"HTTP {status_code}: {body}"

        attempt += 1
        if attempt > retries:
            msg = f"{method} {url} failed after {attempt} attempts: {reason}"
            raise error_cls(
                msg,
                url=url,
                status_code=status_code,
                body=body,
                attempts=attempt,
            ) from cause

        delay = backoff_delay(attempt, initial_delay)
        logger.warning(
            "%s %s failed (%s), retry %d/%d in %.2fs",
            method,
            url,
            reason,
            attempt,
            retries,
            delay,
        )
        await asyncio.sleep(delay)
