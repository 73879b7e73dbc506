"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance to satisfy the NotificationPort protocol and
translates Telegram errors into DeliveryError.
"""

from __future__ import annotations

import logging

from telegram import Bot
from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TelegramError

from src.ports.notification_port import DeliveryError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(
        self, user_id: int, text: str, parse_mode: str | None = None
    ) -> None:
        try:
            await self._bot.send_message(chat_id=user_id, text=text, parse_mode=parse_mode)
        except (Forbidden, BadRequest) as exc:
            # Blocked the bot, deleted account, or bad chat id.
            raise DeliveryError(str(exc), permanent=True) from exc
        except RetryAfter as exc:
            raise DeliveryError(f"Rate limited, retry after {exc.retry_after}s") from exc
        except NetworkError as exc:
            raise DeliveryError(str(exc)) from exc
        except TelegramError as exc:
            raise DeliveryError(str(exc)) from exc
