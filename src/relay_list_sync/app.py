"""HTTP entry point.

Serves a static ``/info`` document and, when ``SYNC_INTERVAL_SECONDS`` is set,
triggers reconciliation runs on that interval for the lifetime of the app.

Example:
    uvicorn relay_list_sync.app:app
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from relay_list_sync import __version__
from relay_list_sync.info import WORKER_NAME, build_info
from relay_list_sync.settings import RelaySyncSettings, get_settings
from relay_list_sync.worker import cancel_runs, trigger

logger = logging.getLogger(__name__)


async def _schedule_loop(settings: RelaySyncSettings, interval: int) -> None:
    while True:
        trigger(settings)
        await asyncio.sleep(interval)


def create_app(settings: RelaySyncSettings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Optional settings. If not provided, reads from environment.

    Returns:
        Configured FastAPI app.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        scheduler: asyncio.Task | None = None
        if settings.sync_interval_seconds:
            logger.info(
                "Scheduling reconciliation every %ds", settings.sync_interval_seconds
            )
            scheduler = asyncio.create_task(
                _schedule_loop(settings, settings.sync_interval_seconds)
            )
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await scheduler
            await cancel_runs()

    app = FastAPI(title=WORKER_NAME, version=__version__, lifespan=lifespan)

    @app.get("/info")
    async def info() -> dict[str, Any]:
        return build_info(settings)

    return app


app = create_app()
