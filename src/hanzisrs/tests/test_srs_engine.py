"""Tests for the SRS interval engine."""
import random
from datetime import UTC, datetime

import pytest

from hanzisrs.config import SrsSettings
from hanzisrs.models.models import ProgressRecord
from hanzisrs.services.srs_engine import (
    advance,
    apply_update,
    floor_to_review_slot,
    next_review_time,
)

NOW = datetime(2024, 3, 1, 9, 10, 42, tzinfo=UTC)
SRS = SrsSettings(mastery_threshold=9)


def make_record(**fields) -> ProgressRecord:
    values = dict(
        item_id=1,
        current_interval=0.0417,
        previous_interval=0.0417,
        ease_factor=2.25,
        times_correct=0,
        times_incorrect=0,
        has_reached_week=False,
        introduced=True,
        is_mastered=False,
    )
    values.update(fields)
    return ProgressRecord(**values)


def test_first_correct_answer_moves_to_twelve_hours() -> None:
    """An interval sitting exactly on a tier advances to the following tier."""
    update = advance(make_record(), True, NOW, SRS)
    assert update.new_interval == 0.5
    assert update.new_ease == 2.25
    assert update.reached_week_for_first_time is False


def test_below_first_tier_snaps_to_one_hour() -> None:
    update = advance(make_record(current_interval=0.0), True, NOW, SRS)
    assert update.new_interval == 0.0417


def test_between_tiers_moves_to_next_tier() -> None:
    update = advance(make_record(current_interval=2.0), True, NOW, SRS)
    assert update.new_interval == 3.0


def test_progression_sequence() -> None:
    """All-correct run climbs the ladder and then grows by the ease factor."""
    record = make_record()
    intervals = []
    milestones = []
    for _ in range(5):
        update = advance(record, True, NOW, SRS)
        apply_update(record, update, True, NOW)
        intervals.append(update.new_interval)
        milestones.append(update.reached_week_for_first_time)

    assert intervals == [0.5, 1.0, 3.0, 7.0, pytest.approx(15.75)]
    assert milestones == [False, False, False, True, False]
    assert record.has_reached_week is True
    assert record.previous_interval == 7.0
    assert record.times_correct == 5


def test_incorrect_answer_backs_to_previous() -> None:
    record = make_record(current_interval=7.0, previous_interval=3.0, has_reached_week=True)
    update = advance(record, False, NOW, SRS)
    assert update.new_interval == 3.0
    assert update.new_ease == pytest.approx(2.05)
    assert update.reached_week_for_first_time is False


def test_incorrect_answer_minimum_interval() -> None:
    record = make_record(current_interval=0.5, previous_interval=0.0)
    update = advance(record, False, NOW, SRS)
    assert update.new_interval == 0.0417


def test_ease_factor_floor() -> None:
    record = make_record(current_interval=7.0, previous_interval=3.0, ease_factor=1.4)
    update = advance(record, False, NOW, SRS)
    assert update.new_ease == 1.3


def test_ease_factor_ceiling_on_correct() -> None:
    record = make_record(current_interval=10.0, previous_interval=7.0, ease_factor=2.5)
    update = advance(record, True, NOW, SRS)
    assert update.new_ease == 2.25
    assert update.new_interval == pytest.approx(22.5)


def test_ease_stays_in_bounds_for_random_answers() -> None:
    rng = random.Random(7)
    record = make_record()
    for _ in range(500):
        correct = rng.random() < 0.6
        update = advance(record, correct, NOW, SRS)
        apply_update(record, update, correct, NOW)
        assert 1.3 <= record.ease_factor <= 2.25
        assert record.current_interval >= 0.0417


def test_week_milestone_fires_once() -> None:
    record = make_record(current_interval=3.0, previous_interval=1.0)
    first = advance(record, True, NOW, SRS)
    apply_update(record, first, True, NOW)
    assert first.reached_week_for_first_time is True

    # Fall back below a week and climb again
    for correct in (False, True, True):
        update = advance(record, correct, NOW, SRS)
        apply_update(record, update, correct, NOW)
        assert update.reached_week_for_first_time is False


def test_next_review_rounds_down_to_half_hour() -> None:
    # 0.0417 days is 60 minutes; 09:10:42 + 60 min -> 10:10:42 -> 10:00
    assert next_review_time(NOW, 0.0417) == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
    # 12 hours -> 21:10:42 -> 21:00
    assert next_review_time(NOW, 0.5) == datetime(2024, 3, 1, 21, 0, tzinfo=UTC)


def test_floor_to_review_slot() -> None:
    moment = datetime(2024, 3, 1, 14, 47, 13, 500, tzinfo=UTC)
    assert floor_to_review_slot(moment) == datetime(2024, 3, 1, 14, 30, tzinfo=UTC)


def test_advance_does_not_modify_record() -> None:
    record = make_record(current_interval=1.0, previous_interval=0.5)
    advance(record, True, NOW, SRS)
    assert record.current_interval == 1.0
    assert record.previous_interval == 0.5
    assert record.times_correct == 0


def test_apply_update_counts_incorrect() -> None:
    record = make_record(current_interval=3.0, previous_interval=1.0)
    update = advance(record, False, NOW, SRS)
    apply_update(record, update, False, NOW)
    assert record.times_incorrect == 1
    assert record.times_correct == 0
    assert record.current_interval == 1.0
    assert record.previous_interval == 3.0
    assert record.last_reviewed_at == NOW


def test_long_correct_streak_is_capped() -> None:
    record = make_record()
    for _ in range(200):
        update = advance(record, True, NOW, SRS)
        apply_update(record, update, True, NOW)

    assert record.current_interval == SRS.max_interval_days
    assert record.next_review_at == next_review_time(NOW, SRS.max_interval_days)


def test_oversized_stored_interval_is_pulled_back() -> None:
    record = make_record(current_interval=1e9, previous_interval=1e9)

    assert advance(record, True, NOW, SRS).new_interval == SRS.max_interval_days
    assert advance(record, False, NOW, SRS).new_interval == SRS.max_interval_days
