"""Subscriber registry — who wants which notifications.

Owns the in-memory user id → SubscriberPreferences mapping. Every mutation
is written through to the PreferencesStore before returning. A failed write
is logged and the in-memory state stays authoritative until the next
successful save.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Iterator

from src.data.models import SubscriberPreferences
from src.data.preferences_store import PersistenceError, PreferencesStore

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """Per-user notification toggles with write-through persistence."""

    def __init__(self, store: PreferencesStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        try:
            self._prefs: dict[int, SubscriberPreferences] = store.load_all()
        except PersistenceError as exc:
            logger.error("Error loading preferences, starting empty: %s", exc)
            self._prefs = {}

    def __len__(self) -> int:
        return len(self._prefs)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._prefs

    def get(self, user_id: int) -> SubscriberPreferences:
        """Return a copy of the user's preferences, or unsaved defaults for an unknown user."""
        prefs = self._prefs.get(user_id)
        if prefs is None:
            return SubscriberPreferences()
        return dataclasses.replace(prefs)

    def ensure(self, user_id: int) -> SubscriberPreferences:
        """Create default preferences for a new user. Idempotent."""
        with self._lock:
            prefs = self._prefs.get(user_id)
            if prefs is not None:
                return dataclasses.replace(prefs)
            self._prefs[user_id] = SubscriberPreferences()
            self._persist()
        logger.info("Added new user: %d", user_id)
        return SubscriberPreferences()

    def toggle(self, user_id: int, toggle: str) -> bool:
        """Flip one toggle for the user and return its new value.

        Unknown users get defaults first. Raises ValueError for an
        unknown toggle name.
        """
        if toggle not in SubscriberPreferences.toggle_names():
            raise ValueError(f"Unknown toggle: {toggle!r}")

        with self._lock:
            prefs = self._prefs.setdefault(user_id, SubscriberPreferences())
            value = not getattr(prefs, toggle)
            setattr(prefs, toggle, value)
            self._persist()

        logger.info("User %d set %s=%s", user_id, toggle, value)
        return value

    def list_subscribed(self, toggle: str) -> Iterator[tuple[int, SubscriberPreferences]]:
        """Yield (user_id, prefs) for every user with ``toggle`` enabled."""
        for user_id, prefs in list(self._prefs.items()):
            if prefs.is_enabled(toggle):
                yield user_id, prefs

    def count_enabled(self, toggle: str) -> int:
        return sum(1 for _ in self.list_subscribed(toggle))

    def _persist(self) -> None:
        try:
            self._store.save_all(self._prefs)
        except PersistenceError as exc:
            logger.error("Error saving preferences for %d users: %s", len(self._prefs), exc)
