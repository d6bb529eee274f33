"""Initialize database tables."""
import logging

from sqlmodel import SQLModel

from crm_reminders.db.config import engine
from crm_reminders.models.event import UnifiedEvent  # noqa: F401
from crm_reminders.models.notification import NotificationRecord  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Create all tables in the database."""
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(bind if bind is not None else engine)
    logger.info("[DB INIT] Tables created successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
