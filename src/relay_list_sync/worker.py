"""Scheduled-trigger adapter.

Builds a per-run configuration and clients, runs the reconciler, and logs the
outcome. Run failures are logged and swallowed so that a failed cycle never
takes the host process down; the next scheduled run corrects the list.
"""

import asyncio
import logging

import httpx

from relay_list_sync.config import ReconcilerConfig
from relay_list_sync.exceptions import ConfigurationError
from relay_list_sync.reconciler import Reconciler, RunResult, RunState, RunStatus
from relay_list_sync.settings import RelaySyncSettings, get_settings
from relay_list_sync.sources import SourceFetcher
from relay_list_sync.store import ListStoreClient

logger = logging.getLogger(__name__)

_run_in_flight = False
_background_tasks: set[asyncio.Task] = set()


def log_result(result: RunResult) -> None:
    """Log a run outcome at the appropriate level."""
    if result.status is RunStatus.FAILED:
        logger.error(
            "Scheduled job failed in %s: %s: %s",
            result.failed_state.value if result.failed_state else "setup",
            result.error_type,
            result.error,
        )
    elif result.status is RunStatus.NO_OP:
        logger.info(
            "List '%s' unchanged (%d items) in %.1fs",
            result.list_name,
            result.desired_count,
            result.duration_seconds,
        )
    elif result.status is RunStatus.PREVIEW:
        logger.info(
            "Dry run for '%s': %d items (+%d, -%d)",
            result.list_name,
            result.desired_count,
            result.added,
            result.removed,
        )
    else:
        logger.info(
            "Updated list '%s' to %d items (+%d, -%d) in %.1fs, operation %s",
            result.list_name,
            result.desired_count,
            result.added,
            result.removed,
            result.duration_seconds,
            result.operation_id,
        )


async def run_once(
    settings: RelaySyncSettings | None = None,
    dry_run: bool = False,
) -> RunResult:
    """Run one reconciliation and log the outcome.

    Missing configuration fails the run before any network call.

    Args:
        settings: Optional settings. If not provided, reads from environment.
        dry_run: Compare only, do not write.

    Returns:
        RunResult of the run.
    """
    settings = settings or get_settings()
    try:
        config = ReconcilerConfig.from_settings(settings)
    except ConfigurationError as e:
        result = RunResult(
            status=RunStatus.FAILED,
            state=RunState.FAILED,
            list_name=settings.list_name or "",
            error=str(e),
            error_type=type(e).__name__,
        )
        log_result(result)
        return result

    async with httpx.AsyncClient(timeout=config.request_timeout) as http:
        fetcher = SourceFetcher(
            http,
            retries=config.fetch_retries,
            initial_delay=config.retry_initial_delay,
        )
        store = ListStoreClient(config)
        try:
            reconciler = Reconciler(config, fetcher=fetcher, store=store)
            result = await reconciler.run(dry_run=dry_run)
        finally:
            await store.close()

    log_result(result)
    return result


async def _run_exclusive(settings: RelaySyncSettings | None) -> RunResult | None:
    global _run_in_flight
    try:
        return await run_once(settings)
    except Exception:
        logger.exception("Scheduled job crashed")
        return None
    finally:
        _run_in_flight = False


def trigger(settings: RelaySyncSettings | None = None) -> asyncio.Task | None:
    """Dispatch a run in the background and return immediately.

    Must be called from a running event loop. A trigger that arrives while a
    run is still in flight is skipped.

    Args:
        settings: Optional settings. If not provided, reads from environment.

    Returns:
        The background task, or None if a run is already in progress.
    """
    global _run_in_flight
    if _run_in_flight:
        logger.warning("Previous run still in progress, skipping this trigger")
        return None
    loop = asyncio.get_running_loop()
    _run_in_flight = True
    task = loop.create_task(_run_exclusive(settings))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def cancel_runs() -> None:
    """Cancel background runs still in flight and wait for them to unwind."""
    tasks = [task for task in _background_tasks if not task.done()]
    if not tasks:
        return
    logger.warning("Cancelling %d reconciliation run(s) still in flight", len(tasks))
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
