"""Transactional access to learner progress records."""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Generator, Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hanzisrs.exceptions import PersistenceError
from hanzisrs.models.models import ProgressRecord
from hanzisrs.monitoring import db_errors

logger = logging.getLogger(__name__)


class ProgressStore:
    """Single-writer store for progress records.

    Every read-then-write sequence runs inside `transaction()`, which holds
    one re-entrant lock around the session. Nested transactions join the
    outermost one, so a whole batch commits or rolls back together.
    """

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db
        self.lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        with self.lock:
            self._depth += 1
            try:
                yield self.db
                if self._depth == 1:
                    self.db.commit()
            except SQLAlchemyError as e:
                if self._depth == 1:
                    self.db.rollback()
                    db_errors.labels(error_type=type(e).__name__).inc()
                    logger.error(f"Storage operation failed, transaction rolled back: {e}")
                    raise PersistenceError(str(e)) from e
                raise
            except Exception:
                if self._depth == 1:
                    self.db.rollback()
                raise
            finally:
                self._depth -= 1

    def get_record(self, item_id: int) -> Optional[ProgressRecord]:
        """Get the progress record for an item."""
        with self.transaction() as db:
            return db.query(ProgressRecord).filter(ProgressRecord.item_id == item_id).first()

    def insert_records(self, item_ids: Iterable[int]) -> List[ProgressRecord]:
        """Start tracking items as not-yet-introduced ready queue entries."""
        with self.transaction() as db:
            records = [
                ProgressRecord(item_id=item_id, introduced=False, next_review_at=None)
                for item_id in item_ids
            ]
            db.add_all(records)
            db.flush()
            return records

    def count_ready(self) -> int:
        """Size of the ready queue."""
        with self.transaction() as db:
            return db.query(ProgressRecord).filter(ProgressRecord.introduced == False).count()

    def count_introduced(self) -> int:
        with self.transaction() as db:
            return db.query(ProgressRecord).filter(ProgressRecord.introduced == True).count()

    def count_mastered(self) -> int:
        with self.transaction() as db:
            return db.query(ProgressRecord).filter(ProgressRecord.is_mastered == True).count()

    def _due_query(self, db: Session, now: datetime):
        return db.query(ProgressRecord).filter(
            ProgressRecord.introduced == True,
            ProgressRecord.is_mastered == False,
            ProgressRecord.next_review_at.isnot(None),
            ProgressRecord.next_review_at <= now,
        )

    def count_due(self, now: datetime) -> int:
        with self.transaction() as db:
            return self._due_query(db, now).count()

    def list_due(self, now: datetime, limit: Optional[int] = None) -> List[ProgressRecord]:
        """Introduced, unmastered records due at `now`, earliest first."""
        with self.transaction() as db:
            query = self._due_query(db, now).order_by(
                ProgressRecord.next_review_at.asc(), ProgressRecord.item_id.asc()
            )
            if limit:
                query = query.limit(limit)
            return query.all()

    def get_records(self, item_ids: Iterable[int]) -> Dict[int, ProgressRecord]:
        """Progress records keyed by item ID; untracked items are absent."""
        ids = list(set(item_ids))
        if not ids:
            return {}
        with self.transaction() as db:
            records = db.query(ProgressRecord).filter(ProgressRecord.item_id.in_(ids)).all()
            return {record.item_id: record for record in records}

    def list_ready(self) -> List[ProgressRecord]:
        """Records in the ready queue."""
        with self.transaction() as db:
            return (
                db.query(ProgressRecord)
                .filter(ProgressRecord.introduced == False)
                .order_by(ProgressRecord.id.asc())
                .all()
            )

    def list_self_study(self, limit: int) -> List[ProgressRecord]:
        """Random introduced, unmastered records."""
        with self.transaction() as db:
            return (
                db.query(ProgressRecord)
                .filter(
                    ProgressRecord.introduced == True,
                    ProgressRecord.is_mastered == False,
                )
                .order_by(func.random())
                .limit(limit)
                .all()
            )

    def introduced_ids(self, item_ids: Iterable[int]) -> Set[int]:
        """Subset of `item_ids` that have been introduced."""
        ids = list(set(item_ids))
        if not ids:
            return set()
        with self.transaction() as db:
            rows = (
                db.query(ProgressRecord.item_id)
                .filter(
                    ProgressRecord.item_id.in_(ids),
                    ProgressRecord.introduced == True,
                )
                .all()
            )
            return {item_id for (item_id,) in rows}

    def mark_introduced(
        self, item_ids: Iterable[int], next_review_at: datetime, now: datetime
    ) -> bool:
        """Move items out of the ready queue.

        Returns True when this call empties a previously non-empty ready queue.
        """
        ids = list(item_ids)
        with self.transaction() as db:
            ready_before = self.count_ready()
            records = (
                db.query(ProgressRecord)
                .filter(
                    ProgressRecord.item_id.in_(ids),
                    ProgressRecord.introduced == False,
                )
                .all()
            )
            for record in records:
                record.introduced = True
                record.introduced_at = now
                record.next_review_at = next_review_at
            db.flush()
            ready_after = self.count_ready()
            return ready_before > 0 and ready_after == 0

    def review_times_before(self, end: datetime) -> List[datetime]:
        """Review times of unmastered introduced records earlier than `end`."""
        with self.transaction() as db:
            rows = (
                db.query(ProgressRecord.next_review_at)
                .filter(
                    ProgressRecord.introduced == True,
                    ProgressRecord.is_mastered == False,
                    ProgressRecord.next_review_at.isnot(None),
                    ProgressRecord.next_review_at < end,
                )
                .all()
            )
            return [moment for (moment,) in rows]
