from datetime import timedelta

import pytest

from crm_reminders.middleware.auth import create_access_token
from crm_reminders.services.notification_center import SQLNotificationCenter, build_record
from crm_reminders.utils.israel_time import utc_now


def create_event(client, headers, **overrides):
    payload = {"title": "Follow-up call", "start_time": "2030-03-10T14:00:00", "customer_name": "Dana Levi"}
    payload.update(overrides)
    response = client.post("/api/user-1/events", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_and_root(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["docs"] == "/docs"


def test_requests_need_a_valid_token(client):
    assert client.get("/api/user-1/events").status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/api/user-1/events", headers=bad).status_code == 401

    expired = {"Authorization": f"Bearer {create_access_token('user-1', expires_minutes=-5)}"}
    response = client.get("/api/user-1/events", headers=expired)
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


def test_path_user_must_match_token(client, auth_headers):
    response = client.get("/api/user-2/events", headers=auth_headers("user-1"))
    assert response.status_code == 403


def test_reminders_default_to_one_day_notice(client, auth_headers):
    headers = auth_headers()

    reminder = create_event(client, headers)
    meeting = create_event(client, headers, event_type="meeting")

    assert reminder["advance_notice"] == 1440
    assert reminder["notified"] is False
    assert reminder["is_active"] is True
    assert reminder["created_by"] == "user-1"
    assert meeting["advance_notice"] == 0


def test_create_from_reminder_form_fields(client, auth_headers):
    event = create_event(client, auth_headers(), start_time=None,
                         reminder_date="2030-03-10", reminder_time="9:05")

    assert event["start_time"].startswith("2030-03-10T09:05")


def test_create_rejects_bad_payloads(client, auth_headers):
    headers = auth_headers()
    missing_time = client.post("/api/user-1/events", json={"title": "No time"}, headers=headers)
    bad_type = client.post("/api/user-1/events", json={
        "title": "x", "start_time": "2030-03-10T14:00:00", "event_type": "party",
    }, headers=headers)

    assert missing_time.status_code == 422
    assert bad_type.status_code == 422


def test_crud_flow(client, auth_headers):
    headers = auth_headers()
    event = create_event(client, headers)
    url = f"/api/user-1/events/{event['id']}"

    listing = client.get("/api/user-1/events", headers=headers).json()
    assert listing["count"] == 1

    assert client.get(url, headers=headers).json()["title"] == "Follow-up call"
    updated = client.put(url, json={"title": "Renewal call"}, headers=headers).json()
    assert updated["title"] == "Renewal call"

    assert client.delete(url, headers=headers).status_code == 204
    assert client.get(url, headers=headers).status_code == 404
    assert client.delete(url, headers=headers).status_code == 404


def test_other_users_events_are_invisible(client, auth_headers):
    event = create_event(client, auth_headers())

    response = client.get(f"/api/user-2/events/{event['id']}", headers=auth_headers("user-2"))
    assert response.status_code == 404


def test_mark_notified_and_rearm_on_reschedule(client, auth_headers):
    headers = auth_headers()
    event = create_event(client, headers)
    url = f"/api/user-1/events/{event['id']}"

    response = client.patch(f"{url}/notified", headers=headers)
    assert response.status_code == 200
    assert client.get(url, headers=headers).json()["notified"] is True

    renamed = client.put(url, json={"title": "Renamed"}, headers=headers).json()
    assert renamed["notified"] is True

    moved = client.put(url, json={"start_time": "2030-03-11T09:00:00"}, headers=headers).json()
    assert moved["notified"] is False

    assert client.patch("/api/user-1/events/999/notified", headers=headers).status_code == 404


def test_due_now_uses_notice_window(client, auth_headers):
    headers = auth_headers()
    soon = (utc_now() + timedelta(minutes=55)).isoformat()
    later = (utc_now() + timedelta(days=3)).isoformat()
    due = create_event(client, headers, title="Due", start_time=soon, advance_notice=60)
    create_event(client, headers, title="Later", start_time=later, advance_notice=60)
    create_event(client, headers, title="Meeting", start_time=soon, advance_notice=60, event_type="meeting")

    response = client.get("/api/user-1/events/due/now", headers=headers).json()

    assert [event["id"] for event in response["events"]] == [due["id"]]


def test_notification_center_endpoints(client, auth_headers, session_factory):
    headers = auth_headers()
    center = SQLNotificationCenter(session_factory)
    first = center.record(build_record(user_id="user-1", title="תזכורת: A", message="m", event_id="1",
                                       metadata={"eventId": "1"}))
    center.record(build_record(user_id="user-1", title="תזכורת: B", message="m", event_id="2"))
    center.record(build_record(user_id="user-2", title="תזכורת: C", message="m", event_id="3"))

    listing = client.get("/api/user-1/notifications", headers=headers).json()
    assert listing["count"] == 2
    assert listing["unread_count"] == 2
    assert any(entry["metadata"] == {"eventId": "1"} for entry in listing["notifications"])

    assert client.patch(f"/api/user-1/notifications/{first.id}/read", headers=headers).status_code == 200
    assert client.patch("/api/user-1/notifications/missing/read", headers=headers).status_code == 404
    assert client.patch("/api/user-1/notifications/read-all", headers=headers).json() == {"updated": 1}

    assert client.delete(f"/api/user-1/notifications/{first.id}", headers=headers).status_code == 204
    assert client.delete("/api/user-1/notifications", headers=headers).json() == {"deleted": 1}
    assert client.get("/api/user-1/notifications", headers=headers).json()["count"] == 0


@pytest.mark.parametrize("field", ["title", "event_type", "start_time", "advance_notice", "is_active", "notified"])
def test_update_rejects_null_for_required_fields(client, auth_headers, field):
    headers = auth_headers()
    event = create_event(client, headers)
    url = f"/api/user-1/events/{event['id']}"

    response = client.put(url, json={field: None}, headers=headers)

    assert response.status_code == 422
    assert client.get(url, headers=headers).json()[field] == event[field]


def test_update_may_clear_optional_fields(client, auth_headers):
    headers = auth_headers()
    event = create_event(client, headers, description="Bring the contract")

    response = client.put(f"/api/user-1/events/{event['id']}", json={"description": None}, headers=headers)

    assert response.status_code == 200
    assert response.json()["description"] is None


def test_listing_reports_status_and_israel_display_time(client, auth_headers):
    headers = auth_headers()
    upcoming = create_event(client, headers, title="Upcoming")
    done = create_event(client, headers, title="Done", start_time="2030-07-01T21:30:00")
    client.put(f"/api/user-1/events/{done['id']}", json={"is_active": False}, headers=headers)

    events = {event["title"]: event for event in client.get("/api/user-1/events", headers=headers).json()["events"]}

    assert events["Upcoming"]["status"] == "upcoming"
    # March is winter time, UTC+2
    assert events["Upcoming"]["display_date"] == "2030-03-10"
    assert events["Upcoming"]["display_time"] == "16:00"
    assert events["Done"]["status"] == "completed"
    # 21:30 UTC in July is past midnight in Israel
    assert events["Done"]["display_date"] == "2030-07-02"
    assert events["Done"]["display_time"] == "00:30"


def test_missed_lists_reminders_past_the_late_tolerance(client, auth_headers):
    headers = auth_headers()
    # Window opened 30 minutes ago: too late to fire
    stale = create_event(client, headers, title="Stale",
                         start_time=(utc_now() + timedelta(minutes=30)).isoformat(), advance_notice=60)
    create_event(client, headers, title="Due",
                 start_time=(utc_now() + timedelta(minutes=57)).isoformat(), advance_notice=60)
    create_event(client, headers, title="Later",
                 start_time=(utc_now() + timedelta(days=3)).isoformat(), advance_notice=60)

    response = client.get("/api/user-1/events/missed", headers=headers)

    assert response.status_code == 200
    assert [event["id"] for event in response.json()["events"]] == [stale["id"]]
    assert response.json()["events"][0]["status"] in ("today", "tomorrow")
