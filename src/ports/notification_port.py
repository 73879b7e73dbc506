"""Notification port — abstract interface for sending messages to users.

Core modules depend on this protocol, never on a specific messaging provider.
"""

from __future__ import annotations

from typing import Protocol


class DeliveryError(Exception):
    """Raised when a message could not be delivered to one recipient.

    ``permanent`` is True for blocked or invalid recipients and False for
    rate limits, timeouts and network trouble.
    """

    def __init__(self, message: str, permanent: bool = False) -> None:
        super().__init__(message)
        self.permanent = permanent


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    async def send_message(
        self, user_id: int, text: str, parse_mode: str | None = None
    ) -> None: ...
