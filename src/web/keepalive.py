"""Keepalive jobs — self-ping and heartbeat logging.

Free hosting tiers put idle services to sleep; pinging our own ``/ping``
URL keeps the process (and the notification jobs) alive. Neither job
touches notification state.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

import httpx

if TYPE_CHECKING:
    from src.core.registry import SubscriberRegistry

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10


async def ping_self(app_url: str, timeout: float = _TIMEOUT_SECONDS) -> bool:
    """GET ``<app_url>/ping``. Returns True on a 2xx response, never raises."""
    if not app_url:
        return False

    url = f"{app_url.rstrip('/')}/ping"
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(url)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Error pinging self at %s: %s", url, exc)
        return False

    logger.debug("Self-ping successful (%d)", resp.status_code)
    return True


def log_heartbeat(registry: SubscriberRegistry, tz: ZoneInfo) -> None:
    """Log the user and daily-subscriber counts and local time."""
    now = datetime.now(tz)
    logger.info(
        "Heartbeat: %d users with preferences (%d daily), local time %s %s",
        len(registry), registry.count_enabled("notify_daily"),
        now.strftime("%Y-%m-%d %H:%M:%S"), tz,
    )
