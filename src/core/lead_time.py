"""Lead-time trigger evaluator — pure business logic.

Decides whether a period starts inside the alert band, e.g. 14-16 minutes
from now for a 15-minute lead with a 1-minute tolerance. Minutes are
truncated, so on ticks aligned to :00, :05, ... a start 3 minutes past a
5-minute mark (e.g. 7:33) reads 17 on one tick and 12 on the next and is
never alerted.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from src.data.models import TimeWindow

DEFAULT_LEAD_MINUTES = 15
DEFAULT_TOLERANCE_MINUTES = 1


def minutes_until(now: datetime, start: datetime) -> int:
    """Whole minutes from ``now`` to ``start``, truncated toward zero."""
    return math.trunc((start - now) / timedelta(minutes=1))


def should_fire(
    now: datetime,
    window: TimeWindow | None,
    lead_minutes: int = DEFAULT_LEAD_MINUTES,
    tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
) -> bool:
    """Return True when the window starts within the lead-time band (inclusive)."""
    if window is None:
        return False
    remaining = minutes_until(now, window.start)
    return lead_minutes - tolerance_minutes <= remaining <= lead_minutes + tolerance_minutes
