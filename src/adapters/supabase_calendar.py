"""Supabase calendar adapter — implements CalendarStorePort.

Reads Panchagam rows through the Supabase PostgREST endpoint
(``/rest/v1/<table>``) with the project API key. A date with no row is
``None``; transport and HTTP errors raise CalendarError.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from src.data.models import CalendarRecord
from src.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 10


class SupabaseCalendarStore:
    """Supabase (PostgREST) implementation of CalendarStorePort."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        table: str | None = None,
        timeout: float | None = None,
    ) -> None:
        if url is None or api_key is None or table is None or timeout is None:
            from src.config import settings
            url = url or settings.SUPABASE_URL
            api_key = api_key or settings.SUPABASE_KEY
            table = table or settings.CALENDAR_TABLE
            timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

        self._endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self._table = table
        self._timeout = timeout or _DEFAULT_TIMEOUT_SECONDS
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    async def _select(self, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._endpoint, params=params, headers=self._headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            raise CalendarError(f"Timed out querying {self._table}") from exc
        except httpx.HTTPStatusError as exc:
            raise CalendarError(
                f"{self._table} query failed with HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CalendarError(f"{self._table} query failed: {exc}") from exc

        if not isinstance(data, list):
            raise CalendarError(f"Unexpected response shape from {self._table}")
        return data

    async def fetch_by_date(self, day: date) -> CalendarRecord | None:
        """Return the record for ``day``, or None if the table has no row for it."""
        iso = day.isoformat()
        logger.info("Querying for date: %s", iso)

        rows = await self._select({"select": "*", "date": f"eq.{iso}"})
        if not rows:
            logger.info("No data found for date: %s", iso)
            return None

        try:
            return CalendarRecord.from_row(rows[0])
        except ValueError as exc:
            raise CalendarError(f"Malformed row for {iso}: {exc}") from exc

    async def check_connection(self) -> bool:
        """Check the table with a one-row query. Logs the outcome."""
        logger.info("Testing database connection...")
        try:
            rows = await self._select({"select": "date", "limit": "1"})
        except CalendarError as exc:
            logger.error("Database connection failed: %s", exc)
            return False

        if rows:
            logger.info("Database connection successful! Sample date: %s", rows[0].get("date"))
        else:
            logger.info("Database connection successful, but table %s has no data", self._table)
        return True
