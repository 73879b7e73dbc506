"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp preferences file.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "fake-supabase-key")
os.environ.setdefault("TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("APP_URL", "")

from datetime import date
from zoneinfo import ZoneInfo

import pytest


@pytest.fixture
def tz():
    return ZoneInfo("Asia/Kolkata")


@pytest.fixture
def prefs_path(tmp_path):
    """Return a temporary preferences JSON path."""
    return str(tmp_path / "data" / "preferences.json")


@pytest.fixture
def store(prefs_path):
    """Return a PreferencesStore backed by a temp file."""
    from src.data.preferences_store import PreferencesStore
    return PreferencesStore(path=prefs_path)


@pytest.fixture
def registry(store):
    """Return an empty SubscriberRegistry backed by a temp file."""
    from src.core.registry import SubscriberRegistry
    return SubscriberRegistry(store)


@pytest.fixture
def make_record():
    """Factory for CalendarRecord rows, defaulting to 2025-05-01."""
    from src.data.models import CalendarRecord

    def _make(day: date = date(2025, 5, 1), **fields):
        row = {
            "date": day.isoformat(),
            "vaara": "Thursday",
            "rahu_kalam": "1:30 PM - 3:00 PM",
            "yamagandam": "6:00 AM - 7:30 AM",
            "kuligai": "9:00 AM - 10:30 AM",
            "abhijit_muhurta": "11:50 AM - 12:40 PM",
        }
        row.update(fields)
        return CalendarRecord.from_row(row)

    return _make
