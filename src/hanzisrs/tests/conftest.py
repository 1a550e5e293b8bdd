"""Test configuration."""
import os
from datetime import UTC, datetime, timedelta
from typing import Generator

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from faker import Faker
from sqlalchemy.orm import Session, sessionmaker

# Import after environment setup
from hanzisrs.config import SchedulerSettings, SrsSettings
from hanzisrs.models import models  # noqa: F401  registers tables
from hanzisrs.models.base import init_db, make_engine
from hanzisrs.services.catalog_service import CatalogService
from hanzisrs.services.learning_service import LearningService

fake = Faker()
Faker.seed(1234)


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def character_rows(count: int, start_id: int = 1):
    """Single characters with ranks equal to their ids."""
    return [
        {
            "id": start_id + i,
            "text": f"c{start_id + i}",
            "pinyin": fake.lexify("???"),
            "definition": fake.word(),
            "frequency_rank": start_id + i,
        }
        for i in range(count)
    ]


def word_row(item_id: int, rank: int, component_ids):
    return {
        "id": item_id,
        "text": f"w{item_id}",
        "pinyin": fake.lexify("??? ???"),
        "definition": fake.word(),
        "frequency_rank": rank,
        "is_word": True,
        "component_ids": list(component_ids),
    }


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = make_engine("sqlite://")
    init_db(engine)
    db = sessionmaker(bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 10, tzinfo=UTC))


@pytest.fixture
def scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(
        initial_unlock_size=5,
        batch_size=3,
        cooldown_hours=24,
        character_window_multiple=3,
        word_window_multiple=100,
    )


@pytest.fixture
def srs_settings() -> SrsSettings:
    return SrsSettings(mastery_threshold=9)


@pytest.fixture
def catalog(db: Session) -> CatalogService:
    """Twenty characters (ids/ranks 1-20) and a handful of words."""
    service = CatalogService(db)
    rows = character_rows(20)
    rows += [
        word_row(101, rank=1, component_ids=[1, 2]),  # score 2.01
        word_row(102, rank=3, component_ids=[2, 7]),  # score 7.03
        word_row(103, rank=2, component_ids=[1, 999]),  # missing component, score 1.02
        word_row(104, rank=5, component_ids=[]),  # no components
    ]
    service.bulk_load(rows)
    return service


@pytest.fixture
def learning_service(
    db: Session,
    catalog: CatalogService,
    clock: FakeClock,
    scheduler_settings: SchedulerSettings,
    srs_settings: SrsSettings,
) -> LearningService:
    """Create a learning service instance over the sample catalog."""
    return LearningService(
        db,
        clock=clock,
        scheduler_settings=scheduler_settings,
        srs_settings=srs_settings,
    )
