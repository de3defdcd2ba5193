from __future__ import annotations

import dataclasses
import uuid

from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from meetcmu.auth import deps
from meetcmu.services import notification_service
from tests.helpers import auth_headers, create_event, notifications_for, set_interest

USER = "user@andrew.cmu.edu"
HOST = "host@andrew.cmu.edu"


def _create(client: TestClient, **overrides):
    payload = {"userId": USER, "type": "event_updated", "message": "hello"}
    payload.update(overrides)
    return client.post("/api/notifications/create", json=payload)


def test_list_requires_auth(client: TestClient):
    assert client.get("/api/notifications").status_code == 401


def test_list_is_newest_first_and_scoped_to_recipient(client: TestClient):
    for i in range(3):
        assert _create(client, message=f"n{i}").status_code == 200
    _create(client, userId="someone@andrew.cmu.edu", message="not yours")

    notices = notifications_for(client, USER)
    assert [n["message"] for n in notices] == ["n2", "n1", "n0"]
    assert all(n["user_id"] == USER for n in notices)


def test_list_is_capped_at_fifty(client: TestClient, db_session):
    for i in range(55):
        notification_service.create_notification(db_session, USER, "event_updated", f"n{i}")
    assert len(notifications_for(client, USER)) == 50


def test_list_includes_event_summary(client: TestClient):
    event = create_event(client, HOST)
    set_interest(client, USER, event["id"])
    client.patch(f"/api/events/{event['id']}", json={"location": "Hunt Library"},
                 headers=auth_headers(HOST))

    notice = notifications_for(client, USER)[0]
    assert notice["type"] == "event_updated"
    assert notice["event"]["id"] == event["id"]
    assert notice["event"]["title"] == "Board games night"


def test_mark_one_and_all_read(client: TestClient):
    first = _create(client, message="a").json()["notification"]
    _create(client, message="b")
    headers = auth_headers(USER)

    resp = client.patch("/api/notifications", json={"notificationId": first["id"]}, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    unread = client.get("/api/notifications", params={"unreadOnly": "true"}, headers=headers).json()
    assert [n["message"] for n in unread["notifications"]] == ["b"]

    client.patch("/api/notifications", json={"markAllRead": True}, headers=headers)
    unread = client.get("/api/notifications", params={"unreadOnly": "true"}, headers=headers).json()
    assert unread["notifications"] == []


def test_patch_requires_id_or_mark_all(client: TestClient):
    resp = client.patch("/api/notifications", json={}, headers=auth_headers(USER))
    assert resp.status_code == 400


def test_cannot_touch_someone_elses_notification(client: TestClient):
    theirs = _create(client).json()["notification"]
    other = auth_headers("other@andrew.cmu.edu")

    resp = client.patch("/api/notifications", json={"notificationId": theirs["id"]}, headers=other)
    assert resp.status_code == 404
    resp = client.delete("/api/notifications", params={"id": theirs["id"]}, headers=other)
    assert resp.status_code == 404

    assert notifications_for(client, USER)[0]["read"] is False


def test_delete_one_and_delete_all_read(client: TestClient):
    headers = auth_headers(USER)
    a = _create(client, message="a").json()["notification"]
    b = _create(client, message="b").json()["notification"]
    _create(client, message="c")

    assert client.delete("/api/notifications", params={"id": a["id"]}, headers=headers).status_code == 200
    assert [n["message"] for n in notifications_for(client, USER)] == ["c", "b"]

    client.patch("/api/notifications", json={"notificationId": b["id"]}, headers=headers)
    resp = client.delete("/api/notifications", params={"deleteAll": "true"}, headers=headers)
    assert resp.status_code == 200
    assert [n["message"] for n in notifications_for(client, USER)] == ["c"]

    assert client.delete("/api/notifications", headers=headers).status_code == 400


def test_create_validates_fields(client: TestClient):
    assert client.post("/api/notifications/create", json={"userId": USER}).status_code == 400
    assert _create(client, message="").status_code == 400

    # The type is stored as given; callers may send kinds this service never emits.
    custom = _create(client, type="club_announcement")
    assert custom.status_code == 200
    assert custom.json()["notification"]["type"] == "club_announcement"

    body = _create(client, link="/x", metadata={"k": 1}).json()["notification"]
    assert body["link"] == "/x"
    assert body["metadata"] == {"k": 1}
    assert body["read"] is False


def test_trigger_message_and_milestone(client: TestClient):
    event = create_event(client, HOST)
    set_interest(client, USER, event["id"])

    resp = client.post(
        "/api/notifications/trigger-message",
        json={"eventId": event["id"], "senderId": USER},
    )
    assert resp.status_code == 200
    host_notices = notifications_for(client, HOST)
    assert host_notices[0]["type"] == "new_message"
    assert host_notices[0]["metadata"] == {"senderId": USER, "senderName": USER}

    resp = client.post(
        "/api/notifications/trigger-milestone",
        json={"eventId": event["id"], "currentCount": 12, "previousCount": 9},
    )
    assert resp.status_code == 200
    assert notifications_for(client, HOST)[0]["type"] == "milestone_10_interested"

    missing = str(uuid.uuid4())
    assert client.post(
        "/api/notifications/trigger-message", json={"eventId": missing, "senderId": USER}
    ).status_code == 404
    assert client.post(
        "/api/notifications/trigger-milestone",
        json={"eventId": missing, "currentCount": 5, "previousCount": 4},
    ).status_code == 404


def test_internal_routes_require_secret_when_configured(client: TestClient, monkeypatch):
    monkeypatch.setattr(
        deps, "settings", dataclasses.replace(deps.settings, internal_api_secret="s3cret")
    )

    assert _create(client).status_code == 401
    resp = client.post(
        "/api/notifications/create",
        json={"userId": USER, "type": "event_updated", "message": "hi"},
        headers={"Authorization": "Bearer s3cret"},
    )
    assert resp.status_code == 200


def test_dispatch_dedupes_and_survives_a_failed_row(db_session, monkeypatch):
    calls: list[str] = []
    original = notification_service.create_notification

    def _flaky(db, user_id, *args, **kwargs):
        calls.append(user_id)
        if user_id == "broken@andrew.cmu.edu":
            raise IntegrityError("INSERT", {}, Exception("boom"))
        return original(db, user_id, *args, **kwargs)

    monkeypatch.setattr(notification_service, "create_notification", _flaky)

    delivered = notification_service.dispatch(
        db_session,
        "event_updated",
        ["a@andrew.cmu.edu", "broken@andrew.cmu.edu", "a@andrew.cmu.edu", "b@andrew.cmu.edu", ""],
        "changed",
    )
    assert delivered == 2
    assert calls == ["a@andrew.cmu.edu", "broken@andrew.cmu.edu", "b@andrew.cmu.edu"]
