from datetime import datetime

import pytest

from crm_reminders.engine.errors import RepositoryError
from crm_reminders.engine.types import EventKind
from crm_reminders.models.event import UnifiedEvent
from crm_reminders.repository.base import to_store_columns
from crm_reminders.repository.memory import InMemoryEventRepository
from crm_reminders.repository.sql import SQLEventRepository

from .support import START, make_event


def test_store_columns_use_database_names():
    columns = to_store_columns({
        "kind": EventKind.MEETING,
        "advanceNotice": 30,
        "subject_label": "Dana",
        "owner_id": "user-1",
        "title": "Sync",
    })

    assert columns == {
        "event_type": "meeting",
        "advance_notice": 30,
        "customer_name": "Dana",
        "created_by": "user-1",
        "title": "Sync",
    }


class TestInMemoryEventRepository:

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_defaults(self):
        repository = InMemoryEventRepository()

        event = await repository.create_event({"start_time": START, "advance_notice": 30, "created_by": "user-1"})

        assert event.id == "1"
        assert event.is_active is True
        assert event.notified is False
        assert event.advance_notice_minutes == 30

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_owner(self):
        repository = InMemoryEventRepository([make_event("1"), make_event("2", owner_id="user-2")])

        assert [event.id for event in await repository.list_events("user-2")] == ["2"]
        assert len(await repository.list_events(None)) == 2

    @pytest.mark.asyncio
    async def test_rescheduling_rearms_notified_event(self):
        repository = InMemoryEventRepository([make_event(notified=True)])

        updated = await repository.update_event("1", {"startTime": "2024-03-11T09:00:00Z"})

        assert updated.start_time == datetime(2024, 3, 11, 9, 0)
        assert updated.notified is False

    @pytest.mark.asyncio
    async def test_title_edit_keeps_notified_flag(self):
        repository = InMemoryEventRepository([make_event(notified=True)])

        updated = await repository.update_event("1", {"title": "Renamed"})

        assert updated.title == "Renamed"
        assert updated.notified is True

    @pytest.mark.asyncio
    async def test_update_and_mark_unknown_event(self):
        repository = InMemoryEventRepository()

        assert await repository.update_event("404", {"title": "x"}) is None
        assert await repository.mark_notified("404") is False
        await repository.delete_event("404")

    @pytest.mark.asyncio
    async def test_mark_notified_and_delete(self):
        repository = InMemoryEventRepository([make_event()])

        assert await repository.mark_notified("1") is True
        assert repository.get("1").notified is True

        await repository.delete_event("1")
        assert repository.snapshot() == []


class TestSQLEventRepository:

    @pytest.mark.asyncio
    async def test_round_trip_through_event_store(self, session_factory):
        repository = SQLEventRepository(session_factory, owner_id="user-1")

        created = await repository.create_event({
            "title": "Renewal",
            "start_time": "2024-03-10T14:00:00Z",
            "advance_notice_minutes": 60,
            "subject_label": "Dana Levi",
        })
        events = await repository.list_events("user-1")

        assert [event.id for event in events] == [created.id]
        assert events[0].subject_label == "Dana Levi"
        assert events[0].advance_notice_minutes == 60
        assert await repository.list_events("someone-else") == []

    @pytest.mark.asyncio
    async def test_mark_notified_then_reschedule_rearms(self, session_factory):
        repository = SQLEventRepository(session_factory, owner_id="user-1")
        created = await repository.create_event({"title": "Call", "start_time": START, "advance_notice": 30})

        assert await repository.mark_notified(created.id) is True
        assert (await repository.list_events("user-1"))[0].notified is True

        updated = await repository.update_event(created.id, {"start_time": datetime(2024, 3, 12, 9, 0)})
        assert updated.notified is False

    @pytest.mark.asyncio
    async def test_unknown_and_invalid_ids(self, session_factory):
        repository = SQLEventRepository(session_factory, owner_id="user-1")

        assert await repository.mark_notified("999") is False
        assert await repository.update_event("999", {"title": "x"}) is None
        with pytest.raises(RepositoryError):
            await repository.mark_notified("not-a-number")

    @pytest.mark.asyncio
    async def test_create_requires_owner(self, session_factory):
        repository = SQLEventRepository(session_factory)

        with pytest.raises(RepositoryError):
            await repository.create_event({"title": "Orphan", "start_time": START})

    @pytest.mark.asyncio
    async def test_stored_datetimes_come_back_naive(self, session_factory):
        repository = SQLEventRepository(session_factory, owner_id="user-1")
        created = await repository.create_event({"title": "Call", "start_time": START})

        with session_factory() as session:
            row = session.get(UnifiedEvent, int(created.id))
            assert row.start_time == START
            assert row.start_time.tzinfo is None
            assert row.created_at.tzinfo is None
            assert row.updated_at.tzinfo is None

    @pytest.mark.asyncio
    async def test_null_patch_leaves_required_columns_alone(self, session_factory):
        repository = SQLEventRepository(session_factory, owner_id="user-1")
        created = await repository.create_event({"title": "Call", "start_time": START, "advance_notice": 30})

        updated = await repository.update_event(created.id, {
            "start_time": None,
            "title": None,
            "advance_notice": None,
            "description": None,
        })

        assert updated.start_time == START
        assert updated.title == "Call"
        assert updated.advance_notice_minutes == 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [
        {"start_time": START},                        # no title
        {"title": "Call", "start_time": "next week"},  # unparseable time
    ])
    async def test_invalid_create_data_raises_repository_error(self, session_factory, data):
        repository = SQLEventRepository(session_factory, owner_id="user-1")

        with pytest.raises(RepositoryError):
            await repository.create_event(data)

    @pytest.mark.asyncio
    async def test_invalid_update_data_raises_repository_error(self, session_factory):
        repository = SQLEventRepository(session_factory, owner_id="user-1")
        created = await repository.create_event({"title": "Call", "start_time": START})

        with pytest.raises(RepositoryError):
            await repository.update_event(created.id, {"start_time": "next week"})
