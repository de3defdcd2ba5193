from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


def auth_headers(email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer dev_{email}"}


def in_hours(hours: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=hours)


def create_event(client: TestClient, host_email: str, **overrides) -> dict:
    payload = {
        "title": "Board games night",
        "date_time": in_hours(48).isoformat(),
    }
    payload.update(overrides)
    resp = client.post("/api/events", json=payload, headers=auth_headers(host_email))
    assert resp.status_code == 201, resp.text
    return resp.json()


def set_interest(client: TestClient, email: str, event_id: str, interested: bool = True):
    return client.put(
        f"/api/events/{event_id}/interest",
        json={"interested": interested},
        headers=auth_headers(email),
    )


def notifications_for(client: TestClient, email: str) -> list[dict]:
    resp = client.get("/api/notifications", headers=auth_headers(email))
    assert resp.status_code == 200, resp.text
    return resp.json()["notifications"]
