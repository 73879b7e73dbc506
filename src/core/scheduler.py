"""
Panchagam Bot — Notification Scheduler.

Daily Digest: a proactive push at 06:00 Asia/Kolkata with the full
Panchagam for today, sent to users with the daily toggle on.

Period Check: every 5 minutes, each named period on today's record is
parsed and checked against the lead-time band; when a period is about to
start, its subscribers get an alert. Each (event, date) is sent at most
once per run.

This module is provider-agnostic: it depends on CalendarStorePort and the
dispatcher, not on Supabase or Telegram.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from src.core.formatter import format_daily_notification, format_period_alert
from src.core.lead_time import DEFAULT_LEAD_MINUTES, DEFAULT_TOLERANCE_MINUTES, should_fire
from src.core.time_window import parse_time_window
from src.data.models import NotificationEvent
from src.ports.calendar_port import CalendarError

if TYPE_CHECKING:
    from src.core.dispatcher import DispatchResult, NotificationDispatcher
    from src.core.registry import SubscriberRegistry
    from src.data.models import CalendarRecord
    from src.ports.calendar_port import CalendarStorePort

logger = logging.getLogger(__name__)

DAILY_DIGEST_EVENT = "daily_digest"


@dataclass(frozen=True)
class PeriodEvent:
    """A named period field on the calendar row and the toggle that gates it."""

    field: str
    label: str
    toggle: str
    auspicious: bool = False


# Several periods share a toggle: Kuligai follows Rahu Kalam,
# Abhijit Muhurta follows the daily toggle.
PERIOD_EVENTS: tuple[PeriodEvent, ...] = (
    PeriodEvent("rahu_kalam", "Rahu Kalam", "notify_rahu_kalam"),
    PeriodEvent("yamagandam", "Yamagandam", "notify_yamagandam"),
    PeriodEvent("kuligai", "Kuligai", "notify_rahu_kalam"),
    PeriodEvent("abhijit_muhurta", "Abhijit Muhurta", "notify_daily", auspicious=True),
)


class TimerState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    DISPATCHING = "dispatching"


class NotifiedLog:
    """Remembers which (event, date) pairs were already dispatched today."""

    def __init__(self) -> None:
        self._seen: set[NotificationEvent] = set()

    def __contains__(self, event: NotificationEvent) -> bool:
        return event in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def mark(self, event: NotificationEvent) -> bool:
        """Record ``event``. Returns False if it was already recorded."""
        if event in self._seen:
            return False
        self._seen.add(event)
        return True

    def prune(self, today: date) -> None:
        """Forget everything not dated ``today`` (runs past local midnight)."""
        self._seen = {e for e in self._seen if e.date == today}


class NotificationScheduler:
    """Runs the daily digest and the period check against one calendar store."""

    def __init__(
        self,
        calendar: CalendarStorePort,
        registry: SubscriberRegistry,
        dispatcher: NotificationDispatcher,
        tz: ZoneInfo,
        lead_minutes: int = DEFAULT_LEAD_MINUTES,
        tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
        events: tuple[PeriodEvent, ...] = PERIOD_EVENTS,
    ) -> None:
        self._calendar = calendar
        self._registry = registry
        self._dispatcher = dispatcher
        self._tz = tz
        self._lead_minutes = lead_minutes
        self._tolerance_minutes = tolerance_minutes
        self._events = events
        self.notified = NotifiedLog()
        self.digest_state = TimerState.IDLE
        self.period_state = TimerState.IDLE

    def now(self) -> datetime:
        return datetime.now(self._tz)

    async def _fetch(self, day: date, purpose: str) -> CalendarRecord | None:
        try:
            return await self._calendar.fetch_by_date(day)
        except CalendarError as exc:
            logger.error("%s: calendar data unavailable for %s: %s", purpose, day.isoformat(), exc)
            return None

    # -----------------------------------------------------------------------
    # Daily digest
    # -----------------------------------------------------------------------

    async def run_daily_digest(self, now: datetime | None = None) -> DispatchResult | None:
        """Send today's full Panchagam to every daily subscriber.

        Returns None when nothing was sent (no data, or already sent today).
        """
        now = (now or self.now()).astimezone(self._tz)
        today = now.date()
        logger.info("Running daily notification for %s", today.isoformat())

        try:
            self.digest_state = TimerState.FETCHING
            record = await self._fetch(today, "Daily digest")
            if record is None:
                logger.error("Failed to fetch panchagam data for daily notification (%s)", today.isoformat())
                return None

            self.digest_state = TimerState.EVALUATING
            self.notified.prune(today)
            if not self.notified.mark(NotificationEvent(DAILY_DIGEST_EVENT, today)):
                logger.info("Daily digest for %s already sent, skipping", today.isoformat())
                return None

            self.digest_state = TimerState.DISPATCHING
            message = format_daily_notification(record, self._tz)
            recipients = [uid for uid, _ in self._registry.list_subscribed("notify_daily")]
            return await self._dispatcher.dispatch(DAILY_DIGEST_EVENT, message, recipients)
        finally:
            self.digest_state = TimerState.IDLE

    # -----------------------------------------------------------------------
    # Period check
    # -----------------------------------------------------------------------

    async def run_period_check(self, now: datetime | None = None) -> dict[str, DispatchResult]:
        """Alert subscribers of every period starting within the lead-time band.

        Each period is evaluated on its own: a malformed window or a failed
        dispatch for one period never stops the others.
        """
        now = (now or self.now()).astimezone(self._tz)
        today = now.date()
        results: dict[str, DispatchResult] = {}

        try:
            self.period_state = TimerState.FETCHING
            record = await self._fetch(today, "Period check")
            if record is None:
                logger.info("No data found for %s in period notification check", today.isoformat())
                return results

            self.notified.prune(today)
            for event in self._events:
                try:
                    result = await self._check_event(event, record, now)
                except Exception as exc:
                    logger.exception(
                        "Period check for %s on %s failed: %s", event.field, today.isoformat(), exc,
                    )
                    continue
                if result is not None:
                    results[event.field] = result
        finally:
            self.period_state = TimerState.IDLE

        sent = sum(r.sent for r in results.values())
        if sent:
            logger.info("Sent %d period notifications", sent)
        return results

    async def _check_event(
        self, event: PeriodEvent, record: CalendarRecord, now: datetime,
    ) -> DispatchResult | None:
        self.period_state = TimerState.EVALUATING
        window = parse_time_window(record.window_text(event.field), record.date, self._tz)
        if window is None:
            return None
        if not should_fire(now, window, self._lead_minutes, self._tolerance_minutes):
            return None

        key = NotificationEvent(event.field, record.date)
        if not self.notified.mark(key):
            logger.debug("%s on %s already notified", event.field, record.date.isoformat())
            return None

        self.period_state = TimerState.DISPATCHING
        message = format_period_alert(event.label, window, self._lead_minutes, event.auspicious)
        recipients = [uid for uid, _ in self._registry.list_subscribed(event.toggle)]
        return await self._dispatcher.dispatch(event.label, message, recipients)
