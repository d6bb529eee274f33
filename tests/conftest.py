"""Shared fixtures: in-memory database, API client, metrics and clock."""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from crm_reminders.db.config import get_session, get_session_factory
from crm_reminders.main import app
from crm_reminders.middleware.auth import create_access_token
from crm_reminders.models.event import UnifiedEvent  # noqa: F401
from crm_reminders.models.notification import NotificationRecord  # noqa: F401
from crm_reminders.utils.metrics import MetricsCollector

from .support import START, FakeClock


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def clock():
    # Inside the 60-minute notice window of START, five minutes after it opened
    return FakeClock(START - timedelta(minutes=55))


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session_factory(db_engine):
    return lambda: Session(db_engine)


@pytest.fixture
def client(db_engine, session_factory):
    def override_get_session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def build(user_id: str = "user-1"):
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return build
