"""Application wiring."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from hanzisrs.config import settings
from hanzisrs.exceptions import PersistenceError
from hanzisrs.models.base import SessionLocal, init_db
from hanzisrs.models import models  # noqa: F401  registers tables
from hanzisrs.monitoring import start_monitoring
from hanzisrs.services.learning_service import LearningService


class HanziSrs:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.db: Optional[Session] = None
        self.learning_service: Optional[LearningService] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def start(self) -> LearningService:
        """Open the database and build the services."""
        if self.running:
            return self.learning_service

        init_db()
        self.db = SessionLocal()
        self.logger.info("Database initialized")

        if settings.monitoring.enabled:
            start_monitoring(settings.monitoring.port)
            self.logger.info(f"Metrics exported on port {settings.monitoring.port}")

        self.learning_service = LearningService(self.db)
        self.running = True
        return self.learning_service

    def stop(self) -> None:
        """Close the database session."""
        if not self.running:
            return

        if self.db:
            self.db.close()
            self.logger.info("Database session closed")

        self.db = None
        self.learning_service = None
        self.running = False

    def run(self) -> int:
        """Run one unlock check and report the dashboard."""
        service = self.start()
        try:
            status = service.request_unlock_check()
            stats = service.get_dashboard_stats()
        except PersistenceError as e:
            self.logger.error(f"Unlock check failed: {e}")
            return 1
        finally:
            self.stop()

        self.logger.info(
            f"Unlock state: {status.state.value}; unlocked {status.unlocked_count}, "
            f"ready to learn {status.ready_to_learn_count}"
        )
        if status.hours_until_next_unlock is None:
            self.logger.info("Next unlock waits for the ready queue to be introduced")
        else:
            self.logger.info(f"Hours until next unlock: {status.hours_until_next_unlock:.1f}")
        self.logger.info(
            f"Catalog {stats.total_items} items, introduced {stats.introduced_items}, "
            f"mastered {stats.mastered_items}, due now {stats.due_for_review}"
        )
        return 0


def main() -> int:
    """Main entry point."""
    return HanziSrs().run()
