"""Message formatting for Panchagam digests and period alerts.

Produces Telegram Markdown (``*bold*``). Descriptive fields are read from
the record's raw row and degrade to "N/A" when missing or malformed.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from src.core.time_window import format_clock_time
from src.data.models import CalendarRecord, TimeWindow

logger = logging.getLogger(__name__)


def _load_json(value: Any) -> Any:
    """Return ``value`` decoded if it is a JSON string, as-is otherwise."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Could not decode JSON field: %r", value[:80])
        return None


def _format_timestamp(value: Any, tz: ZoneInfo) -> str:
    if not value:
        return "N/A"
    try:
        moment = datetime.fromisoformat(str(value))
    except ValueError:
        return "N/A"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return format_clock_time(moment.astimezone(tz))


def _first_entry(details: dict[str, Any], key: str) -> dict[str, Any] | None:
    data = _load_json(details.get(key))
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    return None


def _nakshatra(details: dict[str, Any]) -> str:
    entry = _first_entry(details, "nakshatra")
    return entry.get("name", "N/A") if entry else "N/A"


def _tithi(details: dict[str, Any]) -> str:
    entry = _first_entry(details, "tithi")
    if not entry:
        return "N/A"
    paksha = entry.get("paksha")
    return f"{entry.get('name', 'N/A')} ({paksha})" if paksha else entry.get("name", "N/A")


def _chandrashtama(details: dict[str, Any]) -> str | None:
    data = _load_json(details.get("chandrashtama_for"))
    if isinstance(data, list) and data:
        return ", ".join(str(item) for item in data)
    return None


_MOON_PHASES = (
    ("is_valar_pirai", "🌒 Valar Pirai (Waxing Moon)"),
    ("is_thei_pirai", "🌘 Thei Pirai (Waning Moon)"),
    ("is_amavasai", "🌑 Amavasai (New Moon)"),
    ("is_pournami", "🌕 Pournami (Full Moon)"),
)


def format_digest(record: CalendarRecord | None, tz: ZoneInfo) -> str:
    """Render the full daily Panchagam message for one record."""
    if record is None:
        return "No Panchagam data available for this date."

    d = record.details
    score = d.get("cosmic_score")
    lines = [
        f"📅 *DAILY PANCHAGAM - {record.date.strftime('%d-%m-%Y')} ({d.get('vaara') or 'N/A'})*",
        "",
        "⏰ *TIMINGS*",
        f"🌅 Sunrise: {_format_timestamp(d.get('sunrise'), tz)}",
        f"🌇 Sunset: {_format_timestamp(d.get('sunset'), tz)}",
        f"🌔 Moonrise: {_format_timestamp(d.get('moonrise'), tz)}",
        f"🌘 Moonset: {_format_timestamp(d.get('moonset'), tz)}",
        "",
        "🌟 *ASTROLOGICAL INFO*",
        f"✨ Nakshatra: {_nakshatra(d)}",
        f"🌓 Tithi: {_tithi(d)}",
    ]
    lines.extend(label for key, label in _MOON_PHASES if d.get(key))
    lines += [
        "",
        "⚠️ *CAUTION PERIODS*",
        f"⏱️ Rahu Kalam: {record.window_text('rahu_kalam') or 'N/A'}",
        f"⏱️ Yamagandam: {record.window_text('yamagandam') or 'N/A'}",
        f"⏱️ Kuligai: {record.window_text('kuligai') or 'N/A'}",
        f"✨ Abhijit Muhurta: {record.window_text('abhijit_muhurta') or 'N/A'}",
        "",
        f"📊 Cosmic Score: {score if score is not None else 'N/A'}/10",
    ]
    chandrashtama = _chandrashtama(d)
    if chandrashtama:
        lines.append(f"⚠️ Chandrashtama for: {chandrashtama}")
    return "\n".join(lines)


def format_daily_notification(record: CalendarRecord, tz: ZoneInfo) -> str:
    return (
        "🌞 *Good Morning! Here's your daily Panchagam update:*\n\n"
        + format_digest(record, tz)
    )


def format_period_alert(
    label: str,
    window: TimeWindow,
    lead_minutes: int,
    auspicious: bool = False,
) -> str:
    """Render the "starts in N minutes" alert for one period."""
    window = window.rolled_over()
    span = f"{format_clock_time(window.start)} to {format_clock_time(window.end)}"
    if auspicious:
        return (
            f"✨ *{label} Alert*\n"
            f"The auspicious {label} will begin in {lead_minutes} minutes ({span}). "
            "This is considered a good time for starting important activities."
        )
    return (
        f"⚠️ *{label} Alert*\n"
        f"{label} will begin in {lead_minutes} minutes ({span}). "
        "Plan your activities accordingly."
    )
