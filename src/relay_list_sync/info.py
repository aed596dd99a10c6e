"""Static status document served at ``/info`` and printed by ``relay-list-sync info``."""

from typing import Any

from relay_list_sync import __version__
from relay_list_sync.settings import RelaySyncSettings

WORKER_NAME = "iCloud Private Relay IP List Manager"


def build_info(settings: RelaySyncSettings) -> dict[str, Any]:
    """Build the status document.

    Does not report the outcome of past runs.
    """
    if settings.sync_interval_seconds:
        schedule = f"every {settings.sync_interval_seconds}s (in-process)"
    else:
        schedule = settings.cron_schedule
    return {
        "worker_name": WORKER_NAME,
        "version": __version__,
        "cron_trigger_info": {
            "description": (
                "Runs to fetch and update IPv4 and IPv6 lists "
                "(enforces CIDR bounds)."
            ),
            "schedule": schedule,
        },
        "status": "running",
    }
