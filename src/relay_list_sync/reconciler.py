"""Reconciliation of the managed list against the upstream feeds.

One run walks a fixed sequence of states::

    FETCHING_SOURCES -> NORMALIZING -> RESOLVING_LIST -> FETCHING_EXISTING
        -> COMPARING -> (NO_OP | REPLACING) -> DONE

Any failure ends the run in FAILED. The run never raises: the outcome is
returned as a RunResult and the caller decides how to report it.
"""

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from relay_list_sync.config import ReconcilerConfig
from relay_list_sync.models import BulkOperation
from relay_list_sync.normalizer import DropReason, classify_entry

logger = logging.getLogger(__name__)

_DROPPED_SAMPLE_SIZE = 10


class RunState(str, Enum):
    """States of a reconciliation run."""

    FETCHING_SOURCES = "fetching_sources"
    NORMALIZING = "normalizing"
    RESOLVING_LIST = "resolving_list"
    FETCHING_EXISTING = "fetching_existing"
    COMPARING = "comparing"
    NO_OP = "no_op"
    REPLACING = "replacing"
    DONE = "done"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Final outcome of a run."""

    NO_OP = "no_op"
    REPLACED = "replaced"
    PREVIEW = "preview"
    FAILED = "failed"


class Fetcher(Protocol):
    """Anything that can fetch raw entries from a feed URL."""

    async def fetch_list(self, url: str) -> list[str]: ...


class ListStore(Protocol):
    """Remote list operations the reconciler relies on."""

    async def get_or_create_list(self, list_name: str) -> str: ...

    async def get_all_items(
        self, list_id: str, expected_count_hint: int | None = None
    ) -> list[str]: ...

    async def replace_all_items(
        self, list_id: str, items: Iterable[str]
    ) -> BulkOperation: ...


@dataclass
class NormalizedEntries:
    """Raw entries partitioned into accepted CIDRs and drops.

    Attributes:
        normalized: Accepted CIDRs in input order (may contain duplicates)
        dropped: Trimmed raw text of rejected entries
        dropped_by_reason: Drop counts keyed by DropReason value
    """

    normalized: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    dropped_by_reason: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ListDiff:
    """Set difference between the existing and desired list contents."""

    to_add: list[str]
    to_remove: list[str]

    @property
    def changed(self) -> bool:
        """Whether the sets differ."""
        return bool(self.to_add or self.to_remove)


@dataclass
class RunResult:
    """Result of a reconciliation run.

    Attributes:
        status: Final outcome
        state: Last state reached (FAILED carries the failing state in failed_state)
        failed_state: State in which the run failed, if it failed
        list_name: Managed list name
        list_id: Managed list id, once resolved
        raw_count: Raw entries fetched from both feeds
        desired_count: Size of the desired set
        existing_count: Items read from the remote list
        dropped_count: Raw entries rejected by the normalizer
        dropped_by_reason: Drop counts keyed by DropReason value
        added: CIDRs in the desired set but not in the list
        removed: CIDRs in the list but not in the desired set
        operation_id: Bulk operation id of the replace, if one ran
        error: Error message if the run failed
        error_type: Exception class name if the run failed
        duration_seconds: Time taken by the run
    """

    status: RunStatus
    state: RunState
    list_name: str
    failed_state: RunState | None = None
    list_id: str | None = None
    raw_count: int = 0
    desired_count: int = 0
    existing_count: int = 0
    dropped_count: int = 0
    dropped_by_reason: dict[str, int] = field(default_factory=dict)
    added: int = 0
    removed: int = 0
    operation_id: str | None = None
    error: str | None = None
    error_type: str | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether the run ended without error."""
        return self.status is not RunStatus.FAILED

    @property
    def wrote(self) -> bool:
        """Whether the run replaced the remote list."""
        return self.status is RunStatus.REPLACED


def sets_equal(a: Iterable[str], b: Iterable[str]) -> bool:
    """Compare two sequences as sets, ignoring order and duplicates."""
    return set(a) == set(b)


def compute_diff(existing: Iterable[str], desired: Iterable[str]) -> ListDiff:
    """Compute which CIDRs a replace would add and remove.

    Args:
        existing: Current remote contents.
        desired: Desired contents.

    Returns:
        ListDiff with sorted additions and removals.
    """
    existing_set = set(existing)
    desired_set = set(desired)
    return ListDiff(
        to_add=sorted(desired_set - existing_set),
        to_remove=sorted(existing_set - desired_set),
    )


def normalize_entries(
    raw_entries: Iterable[str],
    *,
    allow_promote_ipv6_to_slash64: bool = False,
) -> NormalizedEntries:
    """Run every raw entry through the normalizer.

    Args:
        raw_entries: Raw feed entries.
        allow_promote_ipv6_to_slash64: Treat bare IPv6 addresses as /64.

    Returns:
        NormalizedEntries with accepted values and per-reason drop counts.
    """
    outcome = NormalizedEntries()
    reasons: Counter[DropReason] = Counter()
    for entry in raw_entries:
        result = classify_entry(
            entry, allow_promote_ipv6_to_slash64=allow_promote_ipv6_to_slash64
        )
        if result.value is not None:
            outcome.normalized.append(result.value)
        else:
            outcome.dropped.append(result.raw)
            reasons[result.reason] += 1
    outcome.dropped_by_reason = {reason.value: n for reason, n in reasons.items()}
    return outcome


class Reconciler:
    """Single-run reconciler for the managed IP list.

    Example:
        ```python
        reconciler = Reconciler(config, fetcher=fetcher, store=store)
        result = await reconciler.run()
        if not result.succeeded:
            logger.error("Run failed: %s", result.error)
        ```
    """

    def __init__(
        self,
        config: ReconcilerConfig,
        *,
        fetcher: Fetcher,
        store: ListStore,
    ) -> None:
        """Initialize the reconciler.

        Args:
            config: Validated run configuration.
            fetcher: Source feed fetcher.
            store: Remote list store.
        """
        self.config = config
        self.fetcher = fetcher
        self.store = store
        self.state = RunState.FETCHING_SOURCES

    def _enter(self, state: RunState) -> None:
        logger.debug("Reconciler state: %s -> %s", self.state.value, state.value)
        self.state = state

    async def fetch_sources(self) -> list[str]:
        """Fetch both feeds concurrently, IPv4 entries first.

        Returns:
            Combined raw entries.
        """
        ipv4, ipv6 = await asyncio.gather(
            self.fetcher.fetch_list(self.config.ipv4_source_url),
            self.fetcher.fetch_list(self.config.ipv6_source_url),
        )
        logger.info(
            "Fetched %d IPv4 and %d IPv6 raw entries", len(ipv4), len(ipv6)
        )
        return [*ipv4, *ipv6]

    async def run(self, dry_run: bool = False) -> RunResult:
        """Reconcile the remote list with the feeds.

        Args:
            dry_run: Stop after comparing and report the diff without writing.

        Returns:
            RunResult describing the outcome. Never raises for run failures.
        """
        start_time = time.monotonic()
        result = RunResult(
            status=RunStatus.FAILED,
            state=RunState.FETCHING_SOURCES,
            list_name=self.config.list_name,
        )
        self.state = RunState.FETCHING_SOURCES

        try:
            raw_entries = await self.fetch_sources()
            result.raw_count = len(raw_entries)

            self._enter(RunState.NORMALIZING)
            entries = normalize_entries(
                raw_entries,
                allow_promote_ipv6_to_slash64=self.config.allow_promote_ipv6_to_slash64,
            )
            desired = sorted(set(entries.normalized))
            result.desired_count = len(desired)
            result.dropped_count = len(entries.dropped)
            result.dropped_by_reason = entries.dropped_by_reason
            logger.info(
                "Normalized %d items. Dropped %d invalid entries.",
                len(desired),
                len(entries.dropped),
            )
            if entries.dropped:
                logger.warning(
                    "Dropped entries by reason: %s (sample: %s)",
                    entries.dropped_by_reason,
                    entries.dropped[:_DROPPED_SAMPLE_SIZE],
                )

            self._enter(RunState.RESOLVING_LIST)
            list_id = await self.store.get_or_create_list(self.config.list_name)
            result.list_id = list_id
            logger.info("Using list '%s' (%s)", self.config.list_name, list_id)

            self._enter(RunState.FETCHING_EXISTING)
            existing = await self.store.get_all_items(list_id)
            result.existing_count = len(existing)
            logger.info("Existing list has %d items", len(existing))

            self._enter(RunState.COMPARING)
            diff = compute_diff(existing, desired)
            result.added = len(diff.to_add)
            result.removed = len(diff.to_remove)

            if dry_run:
                result.status = RunStatus.PREVIEW
                self._enter(RunState.DONE)
            elif sets_equal(existing, desired):
                self._enter(RunState.NO_OP)
                logger.info("No changes detected, skipping update")
                result.status = RunStatus.NO_OP
                self._enter(RunState.DONE)
            else:
                self._enter(RunState.REPLACING)
                logger.info(
                    "Updating list %s with %d items (+%d, -%d)",
                    list_id,
                    len(desired),
                    result.added,
                    result.removed,
                )
                operation = await self.store.replace_all_items(list_id, desired)
                result.operation_id = operation.id
                result.status = RunStatus.REPLACED
                self._enter(RunState.DONE)

        except Exception as e:
            result.status = RunStatus.FAILED
            result.failed_state = self.state
            result.error = str(e)
            result.error_type = type(e).__name__
            self.state = RunState.FAILED

        result.state = self.state
        result.duration_seconds = time.monotonic() - start_time
        return result
