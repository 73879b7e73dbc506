"""Tests for src.core.formatter — digest and alert text."""

import json
from datetime import date, datetime

from src.core.formatter import format_daily_notification, format_digest, format_period_alert
from src.data.models import TimeWindow


class TestFormatDigest:
    def test_none_record(self, tz):
        assert format_digest(None, tz) == "No Panchagam data available for this date."

    def test_full_record(self, tz, make_record):
        record = make_record(
            sunrise="2025-05-01T00:25:00+00:00",
            sunset="2025-05-01T13:15:00+00:00",
            nakshatra=json.dumps([{"name": "Rohini"}]),
            tithi=[{"name": "Chaturthi", "paksha": "Shukla"}],
            chandrashtama_for=["Kanni", "Thulam"],
            is_valar_pirai=True,
            cosmic_score=7,
        )
        text = format_digest(record, tz)

        assert "*DAILY PANCHAGAM - 01-05-2025 (Thursday)*" in text
        assert "Sunrise: 5:55 AM" in text
        assert "Sunset: 6:45 PM" in text
        assert "Moonrise: N/A" in text
        assert "Nakshatra: Rohini" in text
        assert "Tithi: Chaturthi (Shukla)" in text
        assert "Valar Pirai (Waxing Moon)" in text
        assert "Pournami" not in text
        assert "Rahu Kalam: 1:30 PM - 3:00 PM" in text
        assert "Cosmic Score: 7/10" in text
        assert "Chandrashtama for: Kanni, Thulam" in text

    def test_missing_and_malformed_fields_degrade(self, tz, make_record):
        record = make_record(nakshatra="{broken", sunrise="not a time", kuligai=None)
        text = format_digest(record, tz)
        assert "Nakshatra: N/A" in text
        assert "Sunrise: N/A" in text
        assert "Kuligai: N/A" in text
        assert "Chandrashtama for" not in text

    def test_daily_notification_wraps_digest(self, tz, make_record):
        text = format_daily_notification(make_record(), tz)
        assert text.startswith("🌞 *Good Morning!")
        assert "DAILY PANCHAGAM" in text


class TestFormatPeriodAlert:
    def test_caution_period(self, tz):
        window = TimeWindow(
            start=datetime(2025, 5, 1, 16, 30, tzinfo=tz),
            end=datetime(2025, 5, 1, 18, 0, tzinfo=tz),
        )
        text = format_period_alert("Rahu Kalam", window, 15)
        assert text.startswith("⚠️ *Rahu Kalam Alert*")
        assert "will begin in 15 minutes (4:30 PM to 6:00 PM)" in text
        assert "Plan your activities accordingly." in text

    def test_auspicious_period(self, tz):
        window = TimeWindow(
            start=datetime(2025, 5, 1, 11, 50, tzinfo=tz),
            end=datetime(2025, 5, 1, 12, 40, tzinfo=tz),
        )
        text = format_period_alert("Abhijit Muhurta", window, 15, auspicious=True)
        assert text.startswith("✨ *Abhijit Muhurta Alert*")
        assert "The auspicious Abhijit Muhurta" in text
        assert "11:50 AM to 12:40 PM" in text
