"""Dependency-ordered, cooldown-gated release of new items."""
import logging
from datetime import UTC, datetime, timedelta
from typing import Callable, List, Optional

from hanzisrs.config import SchedulerSettings, settings
from hanzisrs.models.models import Item
from hanzisrs.models.scheduling_models import UnlockResult, UnlockState
from hanzisrs.monitoring import items_unlocked, ready_queue_size, unlock_batches
from hanzisrs.services.catalog_service import CatalogService
from hanzisrs.services.progress_store import ProgressStore
from hanzisrs.services.scoring import rank_items
from hanzisrs.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class UnlockScheduler:
    """Controller for the ready queue and the cooldown timer.

    A batch is released only when the ready queue is empty and the cooldown
    since `last_unlock_at` has elapsed. Words become candidates once every
    one of their component characters has been introduced.
    """

    def __init__(
        self,
        store: ProgressStore,
        catalog: CatalogService,
        settings_store: Optional[SettingsStore] = None,
        config: Optional[SchedulerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.settings_store = settings_store or SettingsStore(store)
        self.config = config or settings.scheduler
        self.clock = clock or (lambda: datetime.now(UTC))

    @property
    def cooldown(self) -> timedelta:
        return timedelta(hours=self.config.cooldown_hours)

    def _cooldown_remaining(self, now: datetime) -> timedelta:
        last_unlock_at = self.settings_store.get_last_unlock_at()
        if last_unlock_at is None:
            return timedelta(0)
        remaining = last_unlock_at + self.cooldown - now
        # A stamp from the future never blocks longer than one cooldown
        return min(max(remaining, timedelta(0)), self.cooldown)

    def state(self) -> UnlockState:
        """Current scheduler state."""
        with self.store.transaction():
            if not self.settings_store.is_initial_unlock_done():
                return UnlockState.UNINITIALIZED
            if self.store.count_ready() > 0:
                return UnlockState.AWAITING_DRAIN
            if self._cooldown_remaining(self.clock()) > timedelta(0):
                return UnlockState.COOLDOWN_ACTIVE
            return UnlockState.READY_TO_RELEASE

    def select_batch(self, size: int) -> List[Item]:
        """Lowest-score eligible untracked items, at most `size` of them."""
        with self.store.transaction():
            characters = self.catalog.list_untracked(
                is_word=False, limit=size * self.config.character_window_multiple
            )
            words = self.catalog.list_untracked(
                is_word=True, limit=size * self.config.word_window_multiple
            )

            component_ids = set()
            for word in words:
                component_ids.update(word.component_ids)
            introduced = self.store.introduced_ids(component_ids)
            eligible_words = [
                word for word in words
                if all(cid in introduced for cid in word.component_ids)
            ]

            lookup = self.catalog.component_rank_lookup(eligible_words)
            ranked = rank_items(characters + eligible_words, lookup)
            return [item for _, item in ranked[:size]]

    def initialize(self) -> List[Item]:
        """Place the first characters in the ready queue; runs once."""
        with self.store.transaction():
            if self.settings_store.is_initial_unlock_done():
                return []

            characters = self.catalog.list_untracked(
                is_word=False, limit=self.config.initial_unlock_size
            )
            if not characters:
                logger.warning("Catalog has no characters; initial unlock postponed")
                return []

            items = [item for _, item in rank_items(characters, {})]
            self.store.insert_records(item.id for item in items)
            self.settings_store.set_initial_unlock_done(self.clock())

        unlock_batches.labels(kind="initial").inc()
        items_unlocked.inc(len(items))
        ready_queue_size.set(len(items))
        logger.info(f"Initial unlock placed {len(items)} characters in the ready queue")
        return items

    def check_and_unlock(self) -> UnlockResult:
        """Release the next batch if the ready queue is empty and the cooldown has passed."""
        if not self.settings_store.is_initial_unlock_done():
            items = self.initialize()
            state = UnlockState.AWAITING_DRAIN if items else UnlockState.UNINITIALIZED
            return UnlockResult(state=state, unlocked=items)

        with self.store.transaction():
            ready = self.store.count_ready()
            if ready > 0:
                ready_queue_size.set(ready)
                return UnlockResult(state=UnlockState.AWAITING_DRAIN)

            now = self.clock()
            if self._cooldown_remaining(now) > timedelta(0):
                return UnlockResult(state=UnlockState.COOLDOWN_ACTIVE)

            items = self.select_batch(self.config.batch_size)
            if not items:
                logger.info("No eligible items left to unlock")
                return UnlockResult(state=UnlockState.READY_TO_RELEASE)

            self.store.insert_records(item.id for item in items)
            self.settings_store.set_last_unlock_at(now)

        unlock_batches.labels(kind="batch").inc()
        items_unlocked.inc(len(items))
        ready_queue_size.set(len(items))
        logger.info(
            f"Unlocked {len(items)} items: {', '.join(item.text for item in items)}"
        )
        return UnlockResult(state=UnlockState.AWAITING_DRAIN, unlocked=items)

    def hours_until_next_unlock(self) -> Optional[float]:
        """Remaining cooldown in hours, or None while the ready queue is non-empty."""
        with self.store.transaction():
            if self.store.count_ready() > 0:
                return None
            remaining = self._cooldown_remaining(self.clock())
            return remaining.total_seconds() / 3600

    def mark_ready_drained(self) -> bool:
        """Start the cooldown if the ready queue is now empty.

        Usually runs inside the caller's transaction, so reporting is left to
        the caller once that commits.
        """
        with self.store.transaction():
            if self.store.count_ready() > 0:
                return False
            self.settings_store.set_last_unlock_at(self.clock())
        return True

    def next_unlock_at(self) -> Optional[datetime]:
        """When the running cooldown ends, or None without a stamp."""
        last_unlock_at = self.settings_store.get_last_unlock_at()
        if last_unlock_at is None:
            return None
        return last_unlock_at + self.cooldown
