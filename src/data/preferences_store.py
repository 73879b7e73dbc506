"""
Panchagam Bot — Preferences Store.

Subscriber toggles persist in a single JSON file keyed by Telegram user id.
Every save overwrites the whole file; there is no partial update.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

from src.data.models import SubscriberPreferences

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the preferences file cannot be read or written."""


class PreferencesStore:
    """JSON-file storage for subscriber preferences."""

    def __init__(self, path: str | None = None) -> None:
        if path is None:
            from src.config import settings
            path = settings.PREFERENCES_PATH

        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def load_all(self) -> dict[int, SubscriberPreferences]:
        """Read every stored user. A missing file means no users yet."""
        if not self._path.exists():
            logger.info("No preferences file at %s, starting with empty preferences", self._path)
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self._set_aside()
            raise PersistenceError(f"Could not read {self._path}: {exc}") from exc

        if not isinstance(raw, dict):
            self._set_aside()
            raise PersistenceError(f"Expected a JSON object in {self._path}")

        prefs: dict[int, SubscriberPreferences] = {}
        for user_id, data in raw.items():
            try:
                prefs[int(user_id)] = SubscriberPreferences.from_json(data or {})
            except (TypeError, ValueError):
                logger.warning("Skipping malformed preferences entry for %r", user_id)
        logger.info("Loaded preferences for %d users from %s", len(prefs), self._path)
        return prefs

    def save_all(self, prefs: dict[int, SubscriberPreferences]) -> None:
        """Overwrite the file with the full mapping."""
        payload = {str(user_id): p.to_json() for user_id, p in prefs.items()}
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise PersistenceError(f"Could not write {self._path}: {exc}") from exc
        logger.debug("Saved preferences for %d users to %s", len(prefs), self._path)

    def _set_aside(self) -> None:
        """Copy an unreadable file to ``<name>.corrupt`` before it gets overwritten."""
        backup = self._path.with_suffix(self._path.suffix + ".corrupt")
        try:
            shutil.copyfile(self._path, backup)
        except OSError as exc:
            logger.error("Could not back up unreadable %s: %s", self._path, exc)
            return
        logger.warning("Copied unreadable preferences file to %s", backup)
