"""Typed access to persisted application settings."""
import logging
from datetime import UTC, datetime
from typing import Optional

from hanzisrs.models.models import Setting
from hanzisrs.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)

LAST_UNLOCK_AT = "last_unlock_at"
INITIAL_UNLOCK_DONE = "initial_unlock_done"


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp as UTC.

    A value that cannot be parsed is reported as absent, which the unlock
    scheduler reads as "cooldown elapsed". Learners are never locked out by a
    corrupted timer; the price is an early release.
    """
    if raw is None or raw == "":
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed stored timestamp {raw!r}")
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class SettingsStore:
    """Key/value settings with typed accessors for the unlock timer and flag."""

    def __init__(self, store: ProgressStore):
        """Share the progress store's session and lock."""
        self.store = store

    def get(self, key: str) -> Optional[str]:
        """Get a raw setting value."""
        with self.store.transaction() as db:
            setting = db.get(Setting, key)
            return setting.value if setting else None

    def set(self, key: str, value: str, timestamp: datetime) -> None:
        """Insert or replace a raw setting value."""
        with self.store.transaction() as db:
            setting = db.get(Setting, key)
            if setting is None:
                setting = Setting(key=key)
                db.add(setting)
            setting.value = value
            setting.updated_at = timestamp
            db.flush()

    def get_last_unlock_at(self) -> Optional[datetime]:
        return parse_timestamp(self.get(LAST_UNLOCK_AT))

    def set_last_unlock_at(self, moment: datetime) -> None:
        self.set(LAST_UNLOCK_AT, moment.astimezone(UTC).isoformat(), moment)

    def is_initial_unlock_done(self) -> bool:
        return (self.get(INITIAL_UNLOCK_DONE) or "").strip().lower() == "true"

    def set_initial_unlock_done(self, now: datetime) -> None:
        self.set(INITIAL_UNLOCK_DONE, "true", now)
