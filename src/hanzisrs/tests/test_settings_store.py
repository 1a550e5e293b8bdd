"""Tests for persisted settings."""
from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from hanzisrs.services.progress_store import ProgressStore
from hanzisrs.services.settings_store import (
    INITIAL_UNLOCK_DONE,
    LAST_UNLOCK_AT,
    SettingsStore,
    parse_timestamp,
)

NOW = datetime(2024, 3, 1, 9, 10, tzinfo=UTC)


@pytest.fixture
def settings_store(db: Session) -> SettingsStore:
    return SettingsStore(ProgressStore(db))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-01T09:10:00+00:00", NOW),
        ("2024-03-01T09:10:00", NOW),
        ("2024-03-01 11:10:00+02:00", NOW),
        ("  2024-03-01T09:10:00Z ", NOW),
    ],
)
def test_parse_timestamp(raw: str, expected: datetime) -> None:
    parsed = parse_timestamp(raw)
    assert parsed == expected
    assert parsed.tzinfo is not None


@pytest.mark.parametrize("raw", [None, "", "yesterday", "2024-13-45T00:00:00"])
def test_parse_timestamp_unusable_values(raw) -> None:
    assert parse_timestamp(raw) is None


def test_get_missing_setting(settings_store: SettingsStore) -> None:
    assert settings_store.get("nope") is None
    assert settings_store.get_last_unlock_at() is None
    assert settings_store.is_initial_unlock_done() is False


def test_set_replaces_value(settings_store: SettingsStore) -> None:
    settings_store.set("theme", "dark", NOW)
    settings_store.set("theme", "light", NOW + timedelta(minutes=1))

    assert settings_store.get("theme") == "light"


def test_last_unlock_at_is_stored_as_utc(settings_store: SettingsStore) -> None:
    kyiv = timezone(timedelta(hours=2))
    settings_store.set_last_unlock_at(datetime(2024, 3, 1, 11, 10, tzinfo=kyiv))

    assert settings_store.get(LAST_UNLOCK_AT) == "2024-03-01T09:10:00+00:00"
    assert settings_store.get_last_unlock_at() == NOW


def test_initial_unlock_flag(settings_store: SettingsStore) -> None:
    settings_store.set_initial_unlock_done(NOW)

    assert settings_store.get(INITIAL_UNLOCK_DONE) == "true"
    assert settings_store.is_initial_unlock_done() is True


def test_initial_unlock_flag_is_case_insensitive(settings_store: SettingsStore) -> None:
    settings_store.set(INITIAL_UNLOCK_DONE, " True ", NOW)
    assert settings_store.is_initial_unlock_done() is True

    settings_store.set(INITIAL_UNLOCK_DONE, "0", NOW)
    assert settings_store.is_initial_unlock_done() is False
