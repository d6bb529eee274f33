"""Database configuration for the CRM event store."""
import logging
from typing import Callable, Generator

from sqlalchemy import event
from sqlmodel import Session, create_engine

from crm_reminders.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("postgresql"):
    logger.info("[DB CONFIG] Using PostgreSQL database")
else:
    logger.info(f"[DB CONFIG] Using SQLite database: {DATABASE_URL}")

# SQLite connections are shared with the worker thread the repository uses
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session


def get_session_factory() -> Callable[[], Session]:
    """Dependency for components that open their own short-lived sessions."""
    return lambda: Session(engine)
