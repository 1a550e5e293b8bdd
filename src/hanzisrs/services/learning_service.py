"""Learning service: the operations the front end calls."""
import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from hanzisrs.config import SchedulerSettings, SrsSettings, settings
from hanzisrs.exceptions import ItemNotFoundError, ItemStateError
from hanzisrs.models.models import Item, PracticeRecord, ProgressRecord
from hanzisrs.models.scheduling_models import (
    AnswerOutcome,
    BrowseEntry,
    DashboardStats,
    ReviewCalendar,
    UnlockStatus,
)
from hanzisrs.monitoring import (
    answers_submitted,
    items_mastered,
    practice_answers,
    ready_queue_size,
    week_milestones,
)
from hanzisrs.services.answer_verification import verify_answer
from hanzisrs.services.catalog_service import CatalogService
from hanzisrs.services.mastery import check_mastery
from hanzisrs.services.progress_store import ProgressStore
from hanzisrs.services.scoring import rank_items
from hanzisrs.services.settings_store import SettingsStore
from hanzisrs.services.srs_engine import advance, apply_update, floor_to_review_slot, next_review_time
from hanzisrs.services.unlock_scheduler import UnlockScheduler

logger = logging.getLogger(__name__)


class LearningService:
    """Service for reviewing, introducing and unlocking items."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler_settings: Optional[SchedulerSettings] = None,
        srs_settings: Optional[SrsSettings] = None,
    ):
        """Initialize the service with a database session."""
        self.db = db
        self.clock = clock or (lambda: datetime.now(UTC))
        self.srs = srs_settings or settings.srs
        self.store = ProgressStore(db)
        self.catalog = CatalogService(db)
        self.settings_store = SettingsStore(self.store)
        self.scheduler = UnlockScheduler(
            self.store,
            self.catalog,
            settings_store=self.settings_store,
            config=scheduler_settings,
            clock=self.clock,
        )

    def _require_record(self, item_id: int) -> ProgressRecord:
        record = self.store.get_record(item_id)
        if record is None:
            raise ItemNotFoundError(f"Item {item_id} is not being tracked")
        return record

    def submit_answer(self, item_id: int, correct: bool) -> AnswerOutcome:
        """Record a review answer and reschedule the item."""
        now = self.clock()
        with self.store.transaction() as db:
            record = self._require_record(item_id)
            if not record.introduced:
                raise ItemStateError(f"Item {item_id} has not been introduced yet")

            if record.is_mastered:
                logger.warning(f"Ignoring answer for mastered item {item_id}")
                return AnswerOutcome(
                    item_id=item_id,
                    reached_week_milestone=False,
                    mastered=True,
                    interval=record.current_interval,
                    next_review_at=None,
                )

            update = advance(record, correct, now, self.srs)
            apply_update(record, update, correct, now)
            became_mastered = correct and check_mastery(record, now, self.srs.mastery_threshold)
            db.flush()

            outcome = AnswerOutcome(
                item_id=item_id,
                reached_week_milestone=update.reached_week_for_first_time,
                mastered=bool(record.is_mastered),
                interval=record.current_interval,
                next_review_at=record.next_review_at,
            )

        answers_submitted.labels(result="correct" if correct else "incorrect").inc()
        if outcome.reached_week_milestone:
            week_milestones.inc()
        if became_mastered:
            items_mastered.inc()
        logger.info(
            f"Item {item_id} answered {'correctly' if correct else 'incorrectly'}; "
            f"interval {outcome.interval:.4f} days, next review {outcome.next_review_at}"
        )
        return outcome

    def request_unlock_check(self) -> UnlockStatus:
        """Release a batch if allowed and summarize the unlock state."""
        result = self.scheduler.check_and_unlock()
        return UnlockStatus(
            unlocked_count=result.unlocked_count,
            ready_to_learn_count=self.store.count_ready(),
            hours_until_next_unlock=self.scheduler.hours_until_next_unlock(),
            state=result.state,
        )

    def get_due_cards(self, now: Optional[datetime] = None) -> List[ProgressRecord]:
        """Items due for review, earliest first."""
        return self.store.list_due(now or self.clock())

    def get_self_study_cards(self, limit: int = 20) -> List[ProgressRecord]:
        """Random introduced items that are not mastered."""
        return self.store.list_self_study(limit)

    def get_ready_items(self) -> List[Item]:
        """The ready queue, in introduction order."""
        with self.store.transaction():
            records = self.store.list_ready()
            items = list(self.catalog.get_items(r.item_id for r in records).values())
            lookup = self.catalog.component_rank_lookup(items)
            return [item for _, item in rank_items(items, lookup)]

    def _report_ready_queue(self, drained: bool) -> None:
        ready_queue_size.set(self.store.count_ready())
        if drained:
            next_unlock_at = self.scheduler.next_unlock_at()
            logger.info(f"Ready queue drained; next unlock after {next_unlock_at:%Y-%m-%d %H:%M} UTC")

    def introduce_item(self, item_id: int, immediately_reviewable: bool = False) -> ProgressRecord:
        """Show a ready item to the learner for the first time."""
        now = self.clock()
        with self.store.transaction():
            record = self._require_record(item_id)
            if record.introduced:
                raise ItemStateError(f"Item {item_id} was already introduced")

            if immediately_reviewable:
                next_review_at = floor_to_review_slot(now)
            else:
                next_review_at = next_review_time(now, self.srs.interval_tiers[0])

            drained = self.store.mark_introduced([item_id], next_review_at, now)
            if drained:
                self.scheduler.mark_ready_drained()

        logger.info(f"Introduced item {item_id}, first review at {next_review_at}")
        self._report_ready_queue(drained)
        return record

    def introduce_all_ready(self, immediately_reviewable: bool = False) -> int:
        """Introduce every item in the ready queue."""
        now = self.clock()
        if immediately_reviewable:
            next_review_at = floor_to_review_slot(now)
        else:
            next_review_at = next_review_time(now, self.srs.interval_tiers[0])

        with self.store.transaction():
            ids = [record.item_id for record in self.store.list_ready()]
            if not ids:
                return 0
            drained = self.store.mark_introduced(ids, next_review_at, now)
            if drained:
                self.scheduler.mark_ready_drained()

        logger.info(f"Introduced {len(ids)} ready items")
        self._report_ready_queue(drained)
        return len(ids)

    def record_practice(
        self,
        item_id: int,
        is_correct: Optional[bool] = None,
        mode: str = "self-study",
        prompt_kind: str = "zh_to_en",
        user_answer: str = "",
    ) -> PracticeRecord:
        """Log a self-study answer without touching the SRS schedule.

        When `is_correct` is not given, `user_answer` is checked against the
        catalog entry for the field `prompt_kind` asks about.
        """
        with self.store.transaction() as db:
            self._require_record(item_id)
            if is_correct is None:
                item = self.catalog.get_items([item_id])[item_id]
                is_correct = verify_answer(user_answer, item, prompt_kind)
            practice = PracticeRecord(
                item_id=item_id,
                mode=mode,
                prompt_kind=prompt_kind,
                user_answer=user_answer,
                is_correct=is_correct,
                practiced_at=self.clock(),
            )
            db.add(practice)
            db.flush()

        practice_answers.labels(result="correct" if is_correct else "incorrect").inc()
        return practice

    def browse_introduction_order(self, offset: int = 0, limit: int = 50) -> List[BrowseEntry]:
        """A page of the catalog in the order items will be introduced."""
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must not be negative")

        with self.store.transaction():
            page = self.catalog.introduction_order()[offset:offset + limit]
            ids = [item_id for _, item_id in page]
            items = self.catalog.get_items(ids)
            progress = self.store.get_records(ids)
            return [
                BrowseEntry(
                    position=offset + index,
                    score=score,
                    item=items[item_id],
                    progress=progress.get(item_id),
                )
                for index, (score, item_id) in enumerate(page)
            ]

    def get_total_items_count(self) -> int:
        """Number of items in the catalog."""
        with self.store.transaction():
            return self.catalog.count()

    def get_dashboard_stats(self) -> DashboardStats:
        """Counts for the dashboard."""
        now = self.clock()
        with self.store.transaction():
            return DashboardStats(
                total_items=self.catalog.count(),
                introduced_items=self.store.count_introduced(),
                mastered_items=self.store.count_mastered(),
                due_for_review=self.store.count_due(now),
                ready_to_learn=self.store.count_ready(),
                hours_until_next_unlock=self.scheduler.hours_until_next_unlock(),
            )

    def get_review_calendar(self, days: int = 30) -> ReviewCalendar:
        """Reviews per day for the next `days` days; overdue reviews count today."""
        now = self.clock()
        today = now.date()
        start = datetime(today.year, today.month, today.day, tzinfo=UTC)
        end = start + timedelta(days=days)

        counts = defaultdict(int)
        for offset in range(days):
            counts[today + timedelta(days=offset)] = 0
        for moment in self.store.review_times_before(end):
            counts[max(moment.date(), today)] += 1

        return ReviewCalendar(days=dict(counts))
