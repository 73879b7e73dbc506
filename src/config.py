"""
Panchagam Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Supabase calendar store
    SUPABASE_URL: str
    SUPABASE_KEY: str
    CALENDAR_TABLE: str = "daily_panchangam"

    # Subscriber preferences (JSON file, whole-file overwrite)
    PREFERENCES_PATH: str = "data/preferences.json"

    TIMEZONE: str = "Asia/Kolkata"

    # Daily digest
    DAILY_DIGEST_HOUR: int = 6
    DAILY_DIGEST_MINUTE: int = 0

    # Period alerts: poll every N minutes, fire LEAD ± TOLERANCE minutes before start
    PERIOD_CHECK_INTERVAL_MINUTES: int = 5
    LEAD_TIME_MINUTES: int = 15
    LEAD_TIME_TOLERANCE_MINUTES: int = 1

    # Delivery fan-out
    SEND_CONCURRENCY: int = 5
    SEND_TIMEOUT_SECONDS: float = 10.0
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Status server and keepalive
    PORT: int = 3000
    APP_URL: str = ""
    SELF_PING_INTERVAL_SECONDS: int = 40

    @field_validator(
        "DAILY_DIGEST_HOUR",
        "DAILY_DIGEST_MINUTE",
        "PERIOD_CHECK_INTERVAL_MINUTES",
        "LEAD_TIME_MINUTES",
        "LEAD_TIME_TOLERANCE_MINUTES",
        "SEND_CONCURRENCY",
        "PORT",
        "SELF_PING_INTERVAL_SECONDS",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("DAILY_DIGEST_HOUR")
    @classmethod
    def check_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"DAILY_DIGEST_HOUR out of range: {v}")
        return v

    @field_validator("PERIOD_CHECK_INTERVAL_MINUTES")
    @classmethod
    def check_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"PERIOD_CHECK_INTERVAL_MINUTES must be at least 1: {v}")
        return v

    @field_validator("APP_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "") or os.getenv("BOT_TOKEN", "")
    supabase_url = os.getenv("SUPABASE_URL", "")
    supabase_key = os.getenv("SUPABASE_KEY", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    if not supabase_url or not supabase_key:
        print("ERROR: SUPABASE_URL / SUPABASE_KEY are missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        SUPABASE_URL=supabase_url.rstrip("/"),
        SUPABASE_KEY=supabase_key,
        CALENDAR_TABLE=os.getenv("CALENDAR_TABLE", "daily_panchangam"),
        PREFERENCES_PATH=os.getenv("PREFERENCES_PATH", "data/preferences.json"),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Kolkata"),
        DAILY_DIGEST_HOUR=os.getenv("DAILY_DIGEST_HOUR", "6"),
        DAILY_DIGEST_MINUTE=os.getenv("DAILY_DIGEST_MINUTE", "0"),
        PERIOD_CHECK_INTERVAL_MINUTES=os.getenv("PERIOD_CHECK_INTERVAL_MINUTES", "5"),
        LEAD_TIME_MINUTES=os.getenv("LEAD_TIME_MINUTES", "15"),
        LEAD_TIME_TOLERANCE_MINUTES=os.getenv("LEAD_TIME_TOLERANCE_MINUTES", "1"),
        SEND_CONCURRENCY=os.getenv("SEND_CONCURRENCY", "5"),
        SEND_TIMEOUT_SECONDS=os.getenv("SEND_TIMEOUT_SECONDS", "10"),
        HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS", "10"),
        PORT=os.getenv("PORT", "3000"),
        APP_URL=os.getenv("APP_URL", ""),
        SELF_PING_INTERVAL_SECONDS=os.getenv("SELF_PING_INTERVAL_SECONDS", "40"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
