"""Terminal mastery transition."""
import logging
from datetime import datetime
from typing import Optional

from hanzisrs.config import settings
from hanzisrs.models.models import ProgressRecord

logger = logging.getLogger(__name__)


def check_mastery(record: ProgressRecord, now: datetime, threshold: Optional[int] = None) -> bool:
    """Mark the record mastered once times_correct reaches the threshold.

    Returns True only on the transition. A mastered record never reverts and
    never carries a review time.
    """
    if threshold is None:
        threshold = settings.srs.mastery_threshold

    if record.is_mastered:
        record.next_review_at = None
        return False

    if (record.times_correct or 0) < threshold:
        return False

    record.is_mastered = True
    record.mastered_at = now
    record.next_review_at = None
    logger.info(f"Item {record.item_id} mastered after {record.times_correct} correct answers")
    return True
