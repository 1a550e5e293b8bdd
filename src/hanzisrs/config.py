"""Configuration settings for the scheduler."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Interval ladder in days: 1 hour, 12 hours, 1 day, 3 days, 1 week
INTERVAL_TIERS = (0.0417, 0.5, 1.0, 3.0, 7.0)
WEEK_INTERVAL_DAYS = 7.0
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.25
EASE_PENALTY = 0.2
# Upper bound on exponential growth; keeps review dates representable
MAX_INTERVAL_DAYS = 36500.0


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'hanzisrs.db'}")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class SchedulerSettings:
    """Introduction scheduling settings."""
    initial_unlock_size: int = int(os.getenv("INITIAL_UNLOCK_SIZE", "100"))
    batch_size: int = int(os.getenv("UNLOCK_BATCH_SIZE", "10"))
    cooldown_hours: float = float(os.getenv("UNLOCK_COOLDOWN_HOURS", "24"))
    character_window_multiple: int = int(os.getenv("CHARACTER_WINDOW_MULTIPLE", "3"))
    word_window_multiple: int = int(os.getenv("WORD_WINDOW_MULTIPLE", "100"))


@dataclass
class SrsSettings:
    """Spaced repetition settings."""
    interval_tiers: tuple = INTERVAL_TIERS
    mastery_threshold: int = int(os.getenv("MASTERY_THRESHOLD", "9"))
    min_ease_factor: float = MIN_EASE_FACTOR
    max_ease_factor: float = MAX_EASE_FACTOR
    ease_penalty: float = EASE_PENALTY
    max_interval_days: float = float(os.getenv("MAX_INTERVAL_DAYS", str(MAX_INTERVAL_DAYS)))


@dataclass
class MonitoringSettings:
    """Metrics exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_scheduler_settings() -> SchedulerSettings:
    """Get scheduler settings."""
    return SchedulerSettings()


def get_srs_settings() -> SrsSettings:
    """Get SRS settings."""
    return SrsSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    scheduler: SchedulerSettings = field(default_factory=get_scheduler_settings)
    srs: SrsSettings = field(default_factory=get_srs_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.scheduler.initial_unlock_size < 1:
            raise ValueError("INITIAL_UNLOCK_SIZE must be positive")

        if self.scheduler.batch_size < 1:
            raise ValueError("UNLOCK_BATCH_SIZE must be positive")

        if self.scheduler.cooldown_hours < 0:
            raise ValueError("UNLOCK_COOLDOWN_HOURS cannot be negative")

        if self.scheduler.character_window_multiple < 1 or \
           self.scheduler.word_window_multiple < 1:
            raise ValueError("Candidate window multiples must be positive")

        if self.srs.mastery_threshold < 1:
            raise ValueError("MASTERY_THRESHOLD must be positive")

        if self.srs.max_interval_days < max(self.srs.interval_tiers):
            raise ValueError("MAX_INTERVAL_DAYS must cover the interval ladder")


# Create global settings instance
settings = Settings()
settings.validate()
