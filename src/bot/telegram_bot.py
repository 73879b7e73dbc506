"""
Panchagam Bot — Telegram Bot.

Telegram is the only user interface. Users read today's or tomorrow's
Panchagam on demand and switch notification categories on and off; the
job queue pushes the daily digest and the period alerts.

The bot is public: every user who touches it gets default preferences.
"""

from __future__ import annotations

import logging
from datetime import datetime, time as dt_time, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.core.formatter import format_digest
from src.ports.calendar_port import CalendarError

if TYPE_CHECKING:
    from src.core.registry import SubscriberRegistry
    from src.core.scheduler import NotificationScheduler
    from src.data.models import SubscriberPreferences
    from src.ports.calendar_port import CalendarStorePort
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keyboards
# ---------------------------------------------------------------------------

BTN_TODAY = "📆 Today's Panchagam"
BTN_TOMORROW = "📅 Tomorrow's Panchagam"
BTN_SETTINGS = "⚙️ Notification Settings"
BTN_HELP = "❓ Help"

MAIN_KEYBOARD = ReplyKeyboardMarkup(
    [[BTN_TODAY, BTN_TOMORROW], [BTN_SETTINGS, BTN_HELP]],
    resize_keyboard=True,
)

# (toggle, settings button label, short label for confirmations)
_TOGGLES = (
    ("notify_rahu_kalam", "Rahu Kalam", "Rahu Kalam"),
    ("notify_yamagandam", "Yamagandam", "Yamagandam"),
    ("notify_chandrashtama", "Chandrashtama", "Chandrashtama"),
    ("notify_daily", "Daily Notification", "Daily"),
)


def _mark(enabled: bool) -> str:
    return "✅" if enabled else "❌"


def build_settings_keyboard(prefs: SubscriberPreferences) -> InlineKeyboardMarkup:
    """One toggle button per row, showing the current state."""
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(
            f"{label}: {_mark(prefs.is_enabled(toggle))}",
            callback_data=f"toggle:{toggle}",
        )]
        for toggle, label, _ in _TOGGLES
    ])


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — register the user and show the main keyboard."""
    registry: SubscriberRegistry = context.bot_data["registry"]
    user = update.effective_user
    if user is not None:
        registry.ensure(user.id)

    await update.message.reply_text(
        "🙏 Welcome to Panchagam Bot!\n\n"
        "I'll help you keep track of daily Panchagam information and send you "
        "timely notifications about important periods.\n\n"
        "Use the keyboard below to navigate:",
        reply_markup=MAIN_KEYBOARD,
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list commands and notification times."""
    await update.message.reply_text(
        "*Panchagam Bot Help*\n\n"
        "This bot provides daily Hindu astrological calendar information and notifications.\n\n"
        "*Commands:*\n"
        "/start - Start the bot and display the main menu\n"
        "/today - Get today's Panchagam\n"
        "/tomorrow - Get tomorrow's Panchagam\n"
        "/settings - Manage notification settings\n"
        "/myprefs - View your notification preferences\n\n"
        "*Notifications:*\n"
        f"- Daily summary at {settings.DAILY_DIGEST_HOUR:02d}:{settings.DAILY_DIGEST_MINUTE:02d}\n"
        f"- {settings.LEAD_TIME_MINUTES} minutes before Rahu Kalam, Yamagandam and Kuligai\n"
        f"- {settings.LEAD_TIME_MINUTES} minutes before Abhijit Muhurta\n",
        parse_mode="Markdown",
    )


async def _send_panchagam(
    update: Update, context: ContextTypes.DEFAULT_TYPE, days_ahead: int, label: str,
) -> None:
    calendar: CalendarStorePort = context.bot_data["calendar"]
    tz = ZoneInfo(settings.TIMEZONE)
    day = datetime.now(tz).date() + timedelta(days=days_ahead)

    try:
        record = await calendar.fetch_by_date(day)
    except CalendarError as exc:
        logger.error("/%s calendar error for %s: %s", label, day.isoformat(), exc)
        record = None

    if record is None:
        await update.message.reply_text(
            f"Sorry, I couldn't retrieve {label}'s Panchagam information."
        )
        return

    await update.message.reply_text(format_digest(record, tz), parse_mode="Markdown")


async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today — show today's Panchagam."""
    await _send_panchagam(update, context, 0, "today")


async def cmd_tomorrow(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /tomorrow — show tomorrow's Panchagam."""
    await _send_panchagam(update, context, 1, "tomorrow")


async def cmd_settings(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /settings — show the toggle keyboard."""
    registry: SubscriberRegistry = context.bot_data["registry"]
    prefs = registry.ensure(update.effective_user.id)
    await update.message.reply_text(
        "Notification Settings:",
        reply_markup=build_settings_keyboard(prefs),
    )


async def cmd_myprefs(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myprefs — list the user's saved toggles."""
    registry: SubscriberRegistry = context.bot_data["registry"]
    user_id = update.effective_user.id

    if user_id not in registry:
        await update.message.reply_text(
            "❌ You don't have any saved preferences. Use /start to set up notifications."
        )
        return

    prefs = registry.get(user_id)
    lines = ["Your notification preferences:\n"]
    lines += [f"{short}: {_mark(prefs.is_enabled(toggle))}" for toggle, _, short in _TOGGLES]
    if not prefs.any_enabled():
        lines.append("\nAll notifications are off. Use /settings to turn some back on.")
    lines.append(f"\nYour User ID: {user_id}")
    await update.message.reply_text("\n".join(lines))


async def _handle_toggle_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle a settings button tap: flip the toggle and redraw the keyboard."""
    registry: SubscriberRegistry = context.bot_data["registry"]
    query = update.callback_query
    toggle = query.data.split(":", 1)[1]
    short = next((s for t, _, s in _TOGGLES if t == toggle), None)

    if short is None:
        logger.warning("Unknown toggle in callback: %r", query.data)
        await query.answer("Unknown setting")
        return

    enabled = registry.toggle(query.from_user.id, toggle)
    prefs = registry.get(query.from_user.id)

    try:
        await query.edit_message_reply_markup(reply_markup=build_settings_keyboard(prefs))
    except BadRequest as exc:
        logger.warning("Could not refresh settings keyboard for %d: %s", query.from_user.id, exc)

    await query.answer(f"{short} notifications {'enabled' if enabled else 'disabled'}")


# ---------------------------------------------------------------------------
# Scheduled jobs
# ---------------------------------------------------------------------------


def seconds_until_next_tick(now: datetime, interval_minutes: int) -> float:
    """Seconds from ``now`` to the next wall-clock multiple of the interval.

    Mirrors cron ``*/N`` so ticks land on :00, :05, :10, ...
    """
    minutes_into_day = now.hour * 60 + now.minute
    next_tick = (minutes_into_day // interval_minutes + 1) * interval_minutes
    return (next_tick - minutes_into_day) * 60 - now.second - now.microsecond / 1_000_000


async def _daily_digest_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    scheduler: NotificationScheduler = context.bot_data["scheduler"]
    try:
        await scheduler.run_daily_digest()
    except Exception as exc:
        logger.exception("Daily digest job failed: %s", exc)


async def _period_check_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    scheduler: NotificationScheduler = context.bot_data["scheduler"]
    try:
        await scheduler.run_period_check()
    except Exception as exc:
        logger.exception("Period check job failed: %s", exc)


async def _heartbeat_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.web.keepalive import log_heartbeat

    log_heartbeat(context.bot_data["registry"], ZoneInfo(settings.TIMEZONE))


async def _self_ping_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.web.keepalive import ping_self

    await ping_self(settings.APP_URL)


def _setup_notification_jobs(app: Application) -> None:
    """Register the daily digest, period check and keepalive jobs."""
    tz = ZoneInfo(settings.TIMEZONE)
    digest_time = dt_time(
        hour=settings.DAILY_DIGEST_HOUR, minute=settings.DAILY_DIGEST_MINUTE, tzinfo=tz,
    )
    app.job_queue.run_daily(_daily_digest_job, time=digest_time, name="daily_digest")

    interval = settings.PERIOD_CHECK_INTERVAL_MINUTES
    app.job_queue.run_repeating(
        _period_check_job,
        interval=timedelta(minutes=interval),
        first=seconds_until_next_tick(datetime.now(tz), interval),
        name="period_check",
    )

    app.job_queue.run_repeating(_heartbeat_job, interval=timedelta(minutes=10), name="heartbeat")

    if settings.APP_URL:
        app.job_queue.run_repeating(
            _self_ping_job,
            interval=settings.SELF_PING_INTERVAL_SECONDS,
            first=settings.SELF_PING_INTERVAL_SECONDS,
            name="self_ping",
        )
        logger.info(
            "Self-ping every %ds to %s/ping", settings.SELF_PING_INTERVAL_SECONDS, settings.APP_URL,
        )
    else:
        logger.info("APP_URL not set. Self-polling disabled.")

    logger.info(
        "Daily digest scheduled at %02d:%02d %s; period check every %d minutes",
        settings.DAILY_DIGEST_HOUR, settings.DAILY_DIGEST_MINUTE, settings.TIMEZONE, interval,
    )


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


async def _post_init(app: Application) -> None:
    calendar = app.bot_data["calendar"]
    check = getattr(calendar, "check_connection", None)
    if check is not None and not await check():
        logger.warning("Database connection test failed. Bot may not work correctly.")

    server = app.bot_data.get("status_server")
    if server is not None:
        await server.start()


async def _post_shutdown(app: Application) -> None:
    server = app.bot_data.get("status_server")
    if server is not None:
        await server.stop()


def build_app(
    calendar: CalendarStorePort | None = None,
    notifier: NotificationPort | None = None,
    registry: SubscriberRegistry | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        calendar: Calendar store implementation. Defaults to SupabaseCalendarStore.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
        registry: Subscriber registry. Defaults to one backed by PREFERENCES_PATH.
    """
    from src.core.dispatcher import NotificationDispatcher
    from src.core.scheduler import NotificationScheduler
    from src.web.status_server import StatusServer

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )

    # Wire default adapters if not provided
    if calendar is None:
        from src.adapters.supabase_calendar import SupabaseCalendarStore
        calendar = SupabaseCalendarStore()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    if registry is None:
        from src.core.registry import SubscriberRegistry
        from src.data.preferences_store import PreferencesStore
        registry = SubscriberRegistry(PreferencesStore())

    tz = ZoneInfo(settings.TIMEZONE)
    dispatcher = NotificationDispatcher(
        notifier,
        max_concurrency=settings.SEND_CONCURRENCY,
        send_timeout=settings.SEND_TIMEOUT_SECONDS,
    )
    scheduler = NotificationScheduler(
        calendar,
        registry,
        dispatcher,
        tz,
        lead_minutes=settings.LEAD_TIME_MINUTES,
        tolerance_minutes=settings.LEAD_TIME_TOLERANCE_MINUTES,
    )

    # Store collaborators in bot_data for handler and job access
    app.bot_data["calendar"] = calendar
    app.bot_data["registry"] = registry
    app.bot_data["scheduler"] = scheduler
    app.bot_data["status_server"] = StatusServer(registry, tz, scheduler, port=settings.PORT)

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("today", cmd_today))
    app.add_handler(CommandHandler("tomorrow", cmd_tomorrow))
    app.add_handler(CommandHandler("settings", cmd_settings))
    app.add_handler(CommandHandler("myprefs", cmd_myprefs))
    app.add_handler(CallbackQueryHandler(_handle_toggle_callback, pattern=r"^toggle:\w+$"))

    # Reply-keyboard buttons
    app.add_handler(MessageHandler(filters.Text([BTN_TODAY]), cmd_today))
    app.add_handler(MessageHandler(filters.Text([BTN_TOMORROW]), cmd_tomorrow))
    app.add_handler(MessageHandler(filters.Text([BTN_SETTINGS]), cmd_settings))
    app.add_handler(MessageHandler(filters.Text([BTN_HELP]), cmd_help))

    _setup_notification_jobs(app)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Panchagam Bot is starting...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
