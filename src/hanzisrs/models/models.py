"""Database models for the scheduler."""
from datetime import UTC, datetime
from typing import List

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from hanzisrs.config import INTERVAL_TIERS, MAX_EASE_FACTOR
from hanzisrs.models.base import Base, TimestampMixin, UTCDateTime


def parse_component_ids(raw: str) -> List[int]:
    """Parse a comma-separated id list, skipping fragments that are not ints."""
    if not raw:
        return []
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if part.lstrip("-").isdigit():
            ids.append(int(part))
    return ids


class Item(Base):
    """Catalog item: a single character or a multi-character word."""

    __tablename__ = "items"
    __table_args__ = (CheckConstraint("frequency_rank >= 1", name="ck_items_frequency_rank"),)

    id = Column(Integer, primary_key=True)
    text = Column(String, nullable=False)
    pinyin = Column(String, default="")
    definition = Column(String, default="")
    frequency_rank = Column(Integer, nullable=False, index=True)
    is_word = Column(Boolean, default=False, nullable=False, index=True)
    component_characters = Column(String, nullable=True)  # e.g. "12,48"

    # Relationships
    progress = relationship("ProgressRecord", back_populates="item", uselist=False)

    @property
    def component_ids(self) -> List[int]:
        """Ordered component item ids; empty for single characters."""
        if not self.is_word:
            return []
        return parse_component_ids(self.component_characters)

    def __repr__(self) -> str:
        return f"<Item {self.id} {self.text!r} rank={self.frequency_rank}>"


class ProgressRecord(Base, TimestampMixin):
    """Learner progress for one tracked item."""

    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id"), unique=True, nullable=False)
    current_interval = Column(Float, default=INTERVAL_TIERS[0], nullable=False)  # days
    previous_interval = Column(Float, default=INTERVAL_TIERS[0], nullable=False)  # days
    ease_factor = Column(Float, default=MAX_EASE_FACTOR, nullable=False)
    times_correct = Column(Integer, default=0, nullable=False)
    times_incorrect = Column(Integer, default=0, nullable=False)
    has_reached_week = Column(Boolean, default=False, nullable=False)
    introduced = Column(Boolean, default=False, nullable=False, index=True)
    is_mastered = Column(Boolean, default=False, nullable=False, index=True)
    next_review_at = Column(UTCDateTime, nullable=True, index=True)
    last_reviewed_at = Column(UTCDateTime, nullable=True)
    introduced_at = Column(UTCDateTime, nullable=True)
    mastered_at = Column(UTCDateTime, nullable=True)

    # Relationships
    item = relationship("Item", back_populates="progress")
    practices = relationship("PracticeRecord", back_populates="progress")

    @property
    def times_reviewed(self) -> int:
        return (self.times_correct or 0) + (self.times_incorrect or 0)

    def __repr__(self) -> str:
        return (
            f"<ProgressRecord item={self.item_id} interval={self.current_interval} "
            f"introduced={self.introduced} mastered={self.is_mastered}>"
        )


class Setting(Base):
    """Key/value application setting."""

    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(UTCDateTime, default=lambda: datetime.now(UTC))


class PracticeRecord(Base):
    """Self-study answer log; does not affect SRS state."""

    __tablename__ = "practice_history"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("user_progress.item_id"), nullable=False, index=True)
    mode = Column(String, nullable=False)  # e.g. "self-study"
    prompt_kind = Column(String, nullable=False)  # e.g. "zh_to_en", "pinyin_to_zh"
    user_answer = Column(String, default="")
    is_correct = Column(Boolean, nullable=False)
    practiced_at = Column(UTCDateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    progress = relationship("ProgressRecord", back_populates="practices")
