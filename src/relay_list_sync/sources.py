"""Source feed fetching.

Feeds return either a JSON array or newline-delimited text. Entries are
returned raw; validation is the normalizer's job.
"""

import json
import logging
from typing import Any

import httpx

from relay_list_sync.exceptions import FetchError, FormatError
from relay_list_sync.transport import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_RETRIES,
    fetch_with_retry,
)

logger = logging.getLogger(__name__)


def _stringify(item: Any) -> str:
    """Render a JSON array element as entry text.

    Whole numbers drop their fraction and nested arrays are joined with commas
    (null members become empty), so ``1.0`` reads ``"1"`` and ``[1, 2]`` reads
    ``"1,2"``. Booleans and null keep their JSON spelling.
    """
    if isinstance(item, str):
        return item
    if isinstance(item, bool) or item is None:
        return json.dumps(item)
    if isinstance(item, float) and item.is_integer():
        return str(int(item))
    if isinstance(item, (int, float)):
        return str(item)
    if isinstance(item, list):
        return ",".join("" if member is None else _stringify(member) for member in item)
    return json.dumps(item)


def parse_json_entries(text: str) -> list[str]:
    """Parse a body declared as JSON into raw entries.

    Args:
        text: Response body.

    Returns:
        Each array element as a string.

    Raises:
        FormatError: If the body is not valid JSON or not an array.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = "Expected JSON array from source"
        raise FormatError(msg, details={"reason": str(e)}) from e

    if not isinstance(data, list):
        msg = "Expected JSON array from source"
        raise FormatError(msg, details={"type": type(data).__name__})

    return [_stringify(item) for item in data]


def parse_text_entries(text: str) -> list[str]:
    """Parse a plain-text body into raw entries.

    A body that looks like a JSON array is parsed as one; otherwise the body is
    split into trimmed, non-empty lines.

    Args:
        text: Response body.

    Returns:
        Raw entries.
    """
    trimmed = text.strip()
    if trimmed.startswith("["):
        try:
            data = json.loads(trimmed)
        except json.JSONDecodeError:
            logger.debug("Body starts with '[' but is not JSON, parsing as text")
        else:
            if isinstance(data, list):
                return [_stringify(item) for item in data]

    entries = []
    for line in trimmed.split("\n"):
        line = line.strip()
        if line:
            entries.append(line)
    return entries


class SourceFetcher:
    """Fetcher for IP range feeds.

    Example:
        ```python
        async with httpx.AsyncClient() as http:
            fetcher = SourceFetcher(http, retries=3)
            entries = await fetcher.fetch_list("https://example.com/ipv4.txt")
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        retries: int = DEFAULT_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Shared async HTTP client.
            retries: Retries per request after the first attempt.
            initial_delay: First backoff delay in seconds.
        """
        self.client = client
        self.retries = retries
        self.initial_delay = initial_delay

    async def fetch_list(self, url: str) -> list[str]:
        """Fetch raw entries from a feed URL.

        Args:
            url: Feed URL.

        Returns:
            Raw entries in feed order.

        Raises:
            FetchError: If the transport exhausted its retries.
            FormatError: If JSON content is not an array.
        """
        response = await fetch_with_retry(
            self.client,
            "GET",
            url,
            retries=self.retries,
            initial_delay=self.initial_delay,
            error_cls=FetchError,
        )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            entries = parse_json_entries(response.text)
        else:
            entries = parse_text_entries(response.text)

        logger.debug("Fetched %d raw entries from %s", len(entries), url)
        return entries


async def fetch_list(
    url: str,
    *,
    client: httpx.AsyncClient,
    retries: int = DEFAULT_RETRIES,
) -> list[str]:
    """Fetch raw entries from a feed URL with a one-off fetcher.

    Args:
        url: Feed URL.
        client: Shared async HTTP client.
        retries: Retries per request after the first attempt.

    Returns:
        Raw entries in feed order.
    """
    return await SourceFetcher(client, retries=retries).fetch_list(url)
