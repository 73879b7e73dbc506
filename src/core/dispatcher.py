"""Notification dispatcher — best-effort fan-out to many recipients.

Sends one message to each recipient through the NotificationPort with a
bounded number of sends in flight. A failure for one recipient is logged
and counted; it never aborts the batch and is never retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.ports.notification_port import DeliveryError

if TYPE_CHECKING:
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Aggregate outcome of one dispatch."""

    sent: int = 0
    failed: int = 0
    failed_ids: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.sent + self.failed


class NotificationDispatcher:
    """Fans a rendered message out to a list of user ids."""

    def __init__(
        self,
        notifier: NotificationPort,
        max_concurrency: int = 5,
        send_timeout: float = 10.0,
    ) -> None:
        self._notifier = notifier
        self._max_concurrency = max(1, max_concurrency)
        self._send_timeout = send_timeout

    async def dispatch(
        self,
        event_name: str,
        text: str,
        recipients: Iterable[int],
        parse_mode: str | None = "Markdown",
    ) -> DispatchResult:
        """Send ``text`` to every recipient and return the sent/failed counts."""
        user_ids = list(recipients)
        result = DispatchResult()
        if not user_ids:
            logger.info("%s: no subscribers, nothing to send", event_name)
            return result

        logger.info("Sending %s notifications to %d users", event_name, len(user_ids))
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _send_one(user_id: int) -> bool:
            async with semaphore:
                return await self._send(event_name, user_id, text, parse_mode)

        outcomes = await asyncio.gather(*(_send_one(uid) for uid in user_ids))

        for user_id, ok in zip(user_ids, outcomes):
            if ok:
                result.sent += 1
            else:
                result.failed += 1
                result.failed_ids.append(user_id)

        logger.info(
            "%s notifications: %d sent, %d failed of %d",
            event_name, result.sent, result.failed, result.total,
        )
        return result

    async def _send(
        self, event_name: str, user_id: int, text: str, parse_mode: str | None
    ) -> bool:
        try:
            await asyncio.wait_for(
                self._notifier.send_message(user_id, text, parse_mode=parse_mode),
                timeout=self._send_timeout,
            )
            return True
        except DeliveryError as exc:
            kind = "permanent" if exc.permanent else "transient"
            logger.error(
                "Error sending %s notification to user %d (%s): %s",
                event_name, user_id, kind, exc,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Timed out sending %s notification to user %d after %.0fs",
                event_name, user_id, self._send_timeout,
            )
        except Exception as exc:
            logger.error("Error sending %s notification to user %d: %s", event_name, user_id, exc)
        return False
