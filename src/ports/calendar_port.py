"""Calendar store port — abstract interface for reading Panchagam rows.

Core modules depend on this protocol, never on a specific data store.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from src.data.models import CalendarRecord


class CalendarError(Exception):
    """Raised when the calendar store cannot be reached or returns an error."""


class CalendarStorePort(Protocol):
    """Abstract calendar store used by core modules."""

    async def fetch_by_date(self, day: date) -> CalendarRecord | None: ...
