"""Tests for database models."""
from datetime import UTC, datetime, timedelta, timezone

import pytest
from faker import Faker
from sqlalchemy.orm import Session

from hanzisrs.models.models import (
    Item,
    PracticeRecord,
    ProgressRecord,
    Setting,
    parse_component_ids,
)

fake = Faker()


def test_item_creation(db: Session) -> None:
    """Test character creation."""
    item = Item(text="你", pinyin="nǐ", definition=fake.word(), frequency_rank=12)
    db.add(item)
    db.commit()
    db.refresh(item)

    assert item.id is not None
    assert item.is_word is False
    assert item.component_ids == []


def test_word_components(db: Session) -> None:
    """Test word creation with components."""
    word = Item(
        text="你好",
        pinyin="nǐ hǎo",
        definition="hello",
        frequency_rank=300,
        is_word=True,
        component_characters="12, 48",
    )
    db.add(word)
    db.commit()
    db.refresh(word)

    assert word.component_ids == [12, 48]


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, []),
        ("", []),
        ("7", [7]),
        ("3,x,5", [3, 5]),
        (" 1 , 2 ,", [1, 2]),
    ],
)
def test_parse_component_ids(raw, expected) -> None:
    assert parse_component_ids(raw) == expected


def test_progress_defaults(db: Session) -> None:
    """Test progress record defaults."""
    db.add(Item(id=1, text="的", frequency_rank=1))
    record = ProgressRecord(item_id=1)
    db.add(record)
    db.commit()
    db.refresh(record)

    assert record.current_interval == pytest.approx(0.0417)
    assert record.previous_interval == pytest.approx(0.0417)
    assert record.ease_factor == 2.25
    assert record.times_correct == 0
    assert record.times_incorrect == 0
    assert record.times_reviewed == 0
    assert record.has_reached_week is False
    assert record.introduced is False
    assert record.is_mastered is False
    assert record.next_review_at is None
    assert record.created_at is not None
    assert record.item.text == "的"


def test_datetimes_round_trip_as_utc(db: Session) -> None:
    """Aware datetimes come back in UTC whatever zone they went in with."""
    db.add(Item(id=1, text="是", frequency_rank=3))
    shanghai = timezone(timedelta(hours=8))
    record = ProgressRecord(
        item_id=1,
        next_review_at=datetime(2024, 3, 1, 17, 30, tzinfo=shanghai),
    )
    db.add(record)
    db.commit()
    db.expire_all()

    stored = db.query(ProgressRecord).one()
    assert stored.next_review_at == datetime(2024, 3, 1, 9, 30, tzinfo=UTC)
    assert stored.next_review_at.tzinfo == UTC


def test_practice_history(db: Session) -> None:
    """Test practice record creation."""
    db.add(Item(id=1, text="我", frequency_rank=2))
    db.add(ProgressRecord(item_id=1, introduced=True))
    db.add(
        PracticeRecord(
            item_id=1,
            mode="self-study",
            prompt_kind="zh_to_en",
            user_answer="I",
            is_correct=True,
        )
    )
    db.commit()

    record = db.query(ProgressRecord).one()
    assert len(record.practices) == 1
    assert record.practices[0].practiced_at.tzinfo == UTC


def test_setting_creation(db: Session) -> None:
    db.add(Setting(key="last_unlock_at", value="2024-03-01T09:00:00+00:00"))
    db.commit()

    assert db.get(Setting, "last_unlock_at").updated_at is not None
