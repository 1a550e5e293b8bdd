"""Spaced repetition interval arithmetic.

Intervals are measured in days and climb a fixed ladder
(1 hour, 12 hours, 1 day, 3 days, 1 week) before switching to
exponential growth by the ease factor, capped at `max_interval_days`.
A wrong answer falls back to the interval held before the last update.
"""
from datetime import datetime, timedelta
from typing import Optional

from hanzisrs.config import SrsSettings, WEEK_INTERVAL_DAYS, settings
from hanzisrs.models.models import ProgressRecord
from hanzisrs.models.scheduling_models import SrsUpdate

REVIEW_SLOT_MINUTES = 30


def floor_to_review_slot(moment: datetime) -> datetime:
    """Round a timestamp down to the nearest half hour."""
    minute = moment.minute - moment.minute % REVIEW_SLOT_MINUTES
    return moment.replace(minute=minute, second=0, microsecond=0)


def next_review_time(now: datetime, interval_days: float) -> datetime:
    """Schedule a review `interval_days` after `now`, on a half-hour slot."""
    # Minutes, not days, so the 1 hour and 12 hour tiers keep their precision
    interval_minutes = int(interval_days * 24 * 60)
    return floor_to_review_slot(now + timedelta(minutes=interval_minutes))


def interval_after_correct(current: float, ease: float, srs: SrsSettings) -> float:
    """Next tier strictly above `current`, or capped exponential growth past the last tier."""
    for tier in srs.interval_tiers:
        if current < tier:
            return tier
    return min(current * ease, srs.max_interval_days)


def interval_after_incorrect(previous: float, srs: SrsSettings) -> float:
    return min(max(previous or 0.0, srs.interval_tiers[0]), srs.max_interval_days)


def clamp_ease(ease: float, srs: SrsSettings) -> float:
    return min(max(ease, srs.min_ease_factor), srs.max_ease_factor)


def advance(
    record: ProgressRecord,
    correct: bool,
    now: datetime,
    srs: Optional[SrsSettings] = None,
) -> SrsUpdate:
    """Compute the new interval, ease and review time for one answer.

    Pure: the record is read, never modified.
    """
    srs = srs or settings.srs
    ease = record.ease_factor if record.ease_factor is not None else srs.max_ease_factor

    if correct:
        new_ease = clamp_ease(ease, srs)
        new_interval = interval_after_correct(record.current_interval, new_ease, srs)
    else:
        new_ease = clamp_ease(round(ease - srs.ease_penalty, 4), srs)
        new_interval = interval_after_incorrect(record.previous_interval, srs)

    reached_week = not record.has_reached_week and new_interval >= WEEK_INTERVAL_DAYS

    return SrsUpdate(
        new_interval=new_interval,
        new_ease=new_ease,
        next_review_at=next_review_time(now, new_interval),
        reached_week_for_first_time=reached_week,
    )


def apply_update(record: ProgressRecord, update: SrsUpdate, correct: bool, now: datetime) -> None:
    """Write an SrsUpdate and the answer counters onto a record."""
    record.previous_interval = record.current_interval
    record.current_interval = update.new_interval
    record.ease_factor = update.new_ease
    record.next_review_at = update.next_review_at
    record.last_reviewed_at = now
    record.has_reached_week = bool(record.has_reached_week) or update.reached_week_for_first_time
    if correct:
        record.times_correct = (record.times_correct or 0) + 1
    else:
        record.times_incorrect = (record.times_incorrect or 0) + 1
