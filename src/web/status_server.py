"""HTTP status surface — liveness, health JSON and an HTML status page.

Runs inside the bot's event loop and shares only process lifetime and
read-only counters with the notification scheduler.
"""

from __future__ import annotations

import html
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from aiohttp import web

from src.data.models import SubscriberPreferences

if TYPE_CHECKING:
    from src.core.registry import SubscriberRegistry
    from src.core.scheduler import NotificationScheduler

logger = logging.getLogger(__name__)


def format_uptime(seconds: float) -> str:
    """Format a duration as ``"<d>d <h>h <m>m"``."""
    total_minutes = int(seconds // 60)
    days, rem = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rem, 60)
    return f"{days}d {hours}h {minutes}m"


class StatusServer:
    """Small aiohttp app exposing ``/``, ``/health`` and ``/ping``."""

    def __init__(
        self,
        registry: SubscriberRegistry,
        tz: ZoneInfo,
        scheduler: NotificationScheduler | None = None,
        host: str = "0.0.0.0",
        port: int = 3000,
    ) -> None:
        self._registry = registry
        self._tz = tz
        self._scheduler = scheduler
        self._host = host
        self._port = int(port)
        self._started_at = time.monotonic()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._status_page)
        app.router.add_get("/health", self._health)
        app.router.add_get("/ping", self._ping)
        return app

    async def start(self) -> None:
        self._started_at = time.monotonic()
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        logger.info("Status server is running on port %d", self._port)

    async def stop(self) -> None:
        if self._site is not None:
            await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        logger.info("Status server stopped")

    def uptime(self) -> str:
        return format_uptime(time.monotonic() - self._started_at)

    def _subscriber_counts(self) -> dict[str, int]:
        return {
            toggle: self._registry.count_enabled(toggle)
            for toggle in SubscriberPreferences.toggle_names()
        }

    def _times(self) -> dict[str, str]:
        return {
            "server": datetime.now(timezone.utc).isoformat(),
            "local": datetime.now(self._tz).strftime("%Y-%m-%d %H:%M:%S"),
        }

    async def _ping(self, request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def _health(self, request: web.Request) -> web.Response:
        body = {
            "status": "ok",
            "uptime": self.uptime(),
            "users": len(self._registry),
            "subscribers": self._subscriber_counts(),
            "time": self._times(),
        }
        if self._scheduler is not None:
            body["timers"] = {
                "daily_digest": self._scheduler.digest_state.value,
                "period_check": self._scheduler.period_state.value,
            }
        return web.json_response(body)

    async def _status_page(self, request: web.Request) -> web.Response:
        times = self._times()
        counts = self._subscriber_counts()
        page = f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>Panchagam Bot Status</title>
  <style>
    body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }}
    .status {{ background-color: #e9f7ef; border-radius: 5px; padding: 15px; margin-bottom: 20px; }}
    .success {{ color: #27ae60; }}
    .stats {{ display: grid; grid-template-columns: 1fr 1fr; gap: 10px; }}
    .stat-card {{ background-color: #f8f9fa; border-radius: 5px; padding: 15px; }}
  </style>
</head>
<body>
  <h1>Panchagam Bot Status</h1>
  <div class="status">
    <h2 class="success">✅ Bot is running!</h2>
    <p>Uptime: {self.uptime()}</p>
  </div>
  <h2>Statistics</h2>
  <div class="stats">
    <div class="stat-card">
      <h3>Users</h3>
      <p>Total registered: {len(self._registry)}</p>
      <p>Daily digest: {counts["notify_daily"]}</p>
      <p>Rahu Kalam alerts: {counts["notify_rahu_kalam"]}</p>
      <p>Yamagandam alerts: {counts["notify_yamagandam"]}</p>
    </div>
    <div class="stat-card">
      <h3>System</h3>
      <p>Server time: {html.escape(times["server"])}</p>
      <p>Local time ({html.escape(str(self._tz))}): {html.escape(times["local"])}</p>
    </div>
  </div>
</body>
</html>"""
        return web.Response(text=page, content_type="text/html")
