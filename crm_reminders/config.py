"""Configuration for the CRM reminder engine and event store."""
import logging
import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

# Load environment variables but prioritize local development
load_dotenv()

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL_SECONDS = 15
MAX_POLL_INTERVAL_SECONDS = 30


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


@dataclass
class ReminderSettings:
    """Runtime settings for the reminder scheduler."""

    poll_interval_seconds: float = 30
    late_tolerance_minutes: int = 10
    toast_duration_ms: int = 15000
    database_url: str = "sqlite:///./crm_reminders.db"
    api_base_url: str = "http://localhost:8000/api"
    auth_secret: str = "change-me-in-production"
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"

    def __post_init__(self):
        if self.late_tolerance_minutes < 0:
            raise ValueError("late_tolerance_minutes must be >= 0")
        if not MIN_POLL_INTERVAL_SECONDS <= self.poll_interval_seconds <= MAX_POLL_INTERVAL_SECONDS:
            clamped = min(max(self.poll_interval_seconds, MIN_POLL_INTERVAL_SECONDS), MAX_POLL_INTERVAL_SECONDS)
            logger.warning(
                f"Poll interval {self.poll_interval_seconds}s outside "
                f"{MIN_POLL_INTERVAL_SECONDS}-{MAX_POLL_INTERVAL_SECONDS}s, using {clamped}s"
            )
            self.poll_interval_seconds = clamped

    @property
    def late_tolerance(self) -> timedelta:
        return timedelta(minutes=self.late_tolerance_minutes)

    @classmethod
    def from_env(cls) -> "ReminderSettings":
        """Build settings from environment variables (and a .env file if present)."""
        return cls(
            poll_interval_seconds=_env_int("REMINDER_POLL_INTERVAL_SECONDS", 30),
            late_tolerance_minutes=_env_int("REMINDER_LATE_TOLERANCE_MINUTES", 10),
            toast_duration_ms=_env_int("REMINDER_TOAST_DURATION_MS", 15000),
            database_url=os.environ.get("DATABASE_URL", "sqlite:///./crm_reminders.db"),
            api_base_url=os.environ.get("API_BASE_URL", "http://localhost:8000/api"),
            auth_secret=os.environ.get("AUTH_SECRET", "change-me-in-production"),
            environment=os.environ.get("ENVIRONMENT", "development"),
            frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:5173"),
        )


settings = ReminderSettings.from_env()
