"""
Panchagam Bot — Data Models.

Calendar records are read-only rows supplied by the Supabase table.
Subscriber preferences are the only local state the bot owns; they live in
a JSON file and survive restarts.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timedelta
from typing import Any

# Named time-window fields on a calendar row, in evaluation order.
PERIOD_FIELDS: tuple[str, ...] = ("rahu_kalam", "yamagandam", "kuligai", "abhijit_muhurta")


@dataclass
class CalendarRecord:
    """One Panchagam row for a single calendar date."""

    date: date
    windows: dict[str, str | None] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)   # raw row, opaque to the scheduler

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> CalendarRecord:
        """Build a record from a raw table row.

        Raises ValueError if the row has no parseable ``date``.
        """
        raw_date = row.get("date")
        if not raw_date:
            raise ValueError("Calendar row has no date")
        day = date.fromisoformat(str(raw_date)[:10])
        windows = {name: row.get(name) or None for name in PERIOD_FIELDS}
        return cls(date=day, windows=windows, details=dict(row))

    def window_text(self, name: str) -> str | None:
        return self.windows.get(name)


@dataclass(frozen=True)
class TimeWindow:
    """A parsed "start - end" period anchored to a calendar day.

    Both endpoints are timezone-aware. ``end > start`` is not guaranteed:
    a period crossing midnight parses with ``end`` before ``start``.
    """

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def rolled_over(self) -> TimeWindow:
        """Return a window whose end is moved to the next day if it precedes start."""
        if self.end > self.start:
            return self
        return replace(self, end=self.end + timedelta(days=1))


# Persisted JSON keys, kept compatible with existing preferences.json files.
_JSON_KEYS = {
    "notify_rahu_kalam": "notifyRahuKalam",
    "notify_yamagandam": "notifyYamagandam",
    "notify_chandrashtama": "notifyChandrashtama",
    "notify_daily": "notifyDaily",
}


@dataclass
class SubscriberPreferences:
    """Per-user notification toggles. Everything is on by default."""

    notify_rahu_kalam: bool = True
    notify_yamagandam: bool = True
    notify_chandrashtama: bool = True
    notify_daily: bool = True

    @classmethod
    def toggle_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def is_enabled(self, toggle: str) -> bool:
        if toggle not in _JSON_KEYS:
            raise ValueError(f"Unknown toggle: {toggle!r}")
        return getattr(self, toggle)

    def any_enabled(self) -> bool:
        return any(getattr(self, name) for name in _JSON_KEYS)

    def to_json(self) -> dict[str, bool]:
        return {key: getattr(self, name) for name, key in _JSON_KEYS.items()}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> SubscriberPreferences:
        """Build preferences from a stored mapping; missing keys take defaults."""
        prefs = cls()
        for name, key in _JSON_KEYS.items():
            if key in data:
                setattr(prefs, name, bool(data[key]))
        return prefs


@dataclass(frozen=True)
class NotificationEvent:
    """A named event on a given date; dispatched at most once."""

    name: str
    date: date
