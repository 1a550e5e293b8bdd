"""Value objects passed between the scheduling services and their callers."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from hanzisrs.models.models import Item, ProgressRecord


class UnlockState(Enum):
    """Where the introduction scheduler currently stands."""
    UNINITIALIZED = "uninitialized"  # No initial batch yet
    AWAITING_DRAIN = "awaiting_drain"  # Ready queue still has items
    COOLDOWN_ACTIVE = "cooldown_active"  # Queue empty, waiting on the timer
    READY_TO_RELEASE = "ready_to_release"  # Queue empty, timer elapsed


@dataclass
class SrsUpdate:
    """Result of advancing one record by one answer."""
    new_interval: float  # days
    new_ease: float
    next_review_at: datetime
    reached_week_for_first_time: bool


@dataclass
class AnswerOutcome:
    """What the caller learns after submitting an answer."""
    item_id: int
    reached_week_milestone: bool
    mastered: bool
    interval: float
    next_review_at: Optional[datetime]


@dataclass
class UnlockResult:
    """Items released by one unlock check."""
    state: UnlockState
    unlocked: List[Item] = field(default_factory=list)

    @property
    def unlocked_count(self) -> int:
        return len(self.unlocked)


@dataclass
class UnlockStatus:
    """Summary returned to the front end after an unlock check."""
    unlocked_count: int
    ready_to_learn_count: int
    hours_until_next_unlock: Optional[float]  # None while the ready queue is non-empty
    state: UnlockState


@dataclass
class BrowseEntry:
    """Catalog item in introduction order, with its progress if tracked."""
    position: int
    score: float
    item: Item
    progress: Optional[ProgressRecord] = None

    @property
    def status(self) -> str:
        if self.progress is None or not self.progress.introduced:
            return "not_started"
        if self.progress.is_mastered:
            return "mastered"
        if self.progress.times_reviewed == 0:
            return "new"
        return "learning"


@dataclass
class DashboardStats:
    """Counts shown on the dashboard."""
    total_items: int
    introduced_items: int
    mastered_items: int
    due_for_review: int
    ready_to_learn: int
    hours_until_next_unlock: Optional[float]


@dataclass
class ReviewCalendar:
    """Number of reviews falling on each upcoming day."""
    days: Dict[date, int]

    @property
    def total(self) -> int:
        return sum(self.days.values())
