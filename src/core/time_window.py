"""Time-window parser — pure business logic.

Turns a Panchagam range such as ``"4:30 PM - 6:00 PM"`` into a TimeWindow
anchored to the record's calendar day in the configured timezone.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from src.data.models import TimeWindow

logger = logging.getLogger(__name__)

_RANGE_SEPARATOR = " - "
_TIME_FORMAT = "%I:%M %p"


def parse_clock_time(raw: str) -> time | None:
    """Parse a 12-hour clock string like ``"4:30 PM"``. Returns None if invalid."""
    if not raw:
        return None
    try:
        return datetime.strptime(raw.strip(), _TIME_FORMAT).time()
    except ValueError:
        return None


def parse_time_window(text: str | None, day: date, tz: ZoneInfo) -> TimeWindow | None:
    """Parse ``"<time> - <time>"`` into a TimeWindow on ``day``.

    Returns None for absent, empty or malformed input; never raises.
    The end is not checked against the start.
    """
    if not text or not isinstance(text, str):
        return None

    parts = text.strip().split(_RANGE_SEPARATOR)
    if len(parts) != 2:
        logger.debug("Time range %r does not have exactly two parts", text)
        return None

    start_time = parse_clock_time(parts[0])
    end_time = parse_clock_time(parts[1])
    if start_time is None or end_time is None:
        logger.debug("Could not parse time range %r", text)
        return None

    return TimeWindow(
        start=datetime.combine(day, start_time, tzinfo=tz),
        end=datetime.combine(day, end_time, tzinfo=tz),
    )


def format_clock_time(moment: datetime) -> str:
    """Format as ``"4:30 PM"`` (no leading zero on the hour)."""
    return moment.strftime("%I:%M %p").lstrip("0")
