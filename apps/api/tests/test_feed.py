from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from meetcmu.core.campus import CAMPUS_TZ, campus_date, utcnow
from meetcmu.services.feed_service import FeedFilters, FeedSort, FeedStatus, HourWindow
from tests.helpers import auth_headers, create_event, in_hours, set_interest

HOST = "host@andrew.cmu.edu"


def _campus_time(days_ahead: int, hour: int, minute: int = 0) -> datetime:
    day = campus_date(utcnow()) + timedelta(days=days_ahead)
    return CAMPUS_TZ.localize(datetime(day.year, day.month, day.day, hour, minute))


def _titles(resp) -> list[str]:
    assert resp.status_code == 200, resp.text
    return [e["title"] for e in resp.json()["events"]]


def test_feed_is_public_and_paginates_by_ten(client: TestClient):
    for i in range(12):
        create_event(client, HOST, title=f"Event {i:02d}", date_time=in_hours(24 + i).isoformat())

    first = client.get("/api/events")
    assert first.status_code == 200
    body = first.json()
    assert len(body["events"]) == 10
    assert body["hasMore"] is True
    assert [e["title"] for e in body["events"]] == [f"Event {i:02d}" for i in range(10)]

    second = client.get("/api/events", params={"page": 1}).json()
    assert [e["title"] for e in second["events"]] == ["Event 10", "Event 11"]
    assert second["hasMore"] is False

    assert client.get("/api/events", params={"page": 2}).json() == {"events": [], "hasMore": False}


def test_exactly_ten_events_has_no_more(client: TestClient):
    for i in range(10):
        create_event(client, HOST, title=f"Event {i}", date_time=in_hours(10 + i).isoformat())
    body = client.get("/api/events").json()
    assert len(body["events"]) == 10
    assert body["hasMore"] is False


def test_private_past_and_undated_events_are_not_listed(client: TestClient):
    create_event(client, HOST, title="Visible")
    private = create_event(client, HOST, title="Secret", visibility="private")
    create_event(client, HOST, title="Past", date_time=in_hours(-2).isoformat())
    create_event(client, HOST, title="Someday", date_time=None)

    assert _titles(client.get("/api/events")) == ["Visible"]

    # Private events stay reachable by id.
    detail = client.get(f"/api/events/{private['id']}")
    assert detail.status_code == 200
    assert detail.json()["title"] == "Secret"


def test_status_filter(client: TestClient):
    create_event(client, HOST, title="Maybe", date_time=in_hours(5).isoformat())
    create_event(client, HOST, title="Happening", status="official", date_time=in_hours(6).isoformat())

    assert _titles(client.get("/api/events", params={"filter": "tentative"})) == ["Maybe"]
    assert _titles(client.get("/api/events", params={"filter": "official"})) == ["Happening"]
    assert _titles(client.get("/api/events", params={"filter": "all"})) == ["Maybe", "Happening"]


def test_search_matches_any_text_field_case_insensitively(client: TestClient):
    create_event(client, HOST, title="Robotics Demo", date_time=in_hours(5).isoformat())
    create_event(
        client, HOST, title="Lunch", description="free ROBOTICS stickers",
        date_time=in_hours(6).isoformat(),
    )
    create_event(
        client, HOST, title="Study", location_building="Gates Hillman Center",
        date_time=in_hours(7).isoformat(),
    )
    create_event(client, HOST, title="Chess", location="Room 4401", date_time=in_hours(8).isoformat())

    assert _titles(client.get("/api/events", params={"search": "robotics"})) == [
        "Robotics Demo",
        "Lunch",
    ]
    assert _titles(client.get("/api/events", params={"search": "gates"})) == ["Study"]
    assert _titles(client.get("/api/events", params={"search": "4401"})) == ["Chess"]
    assert _titles(client.get("/api/events", params={"search": "100%"})) == []


def test_tags_match_any_selected_tag(client: TestClient):
    create_event(client, HOST, title="A", tags=["music", "food"], date_time=in_hours(5).isoformat())
    create_event(client, HOST, title="B", tags=["sports"], date_time=in_hours(6).isoformat())
    create_event(client, HOST, title="C", date_time=in_hours(7).isoformat())

    assert _titles(client.get("/api/events", params={"tags": "food,sports"})) == ["A", "B"]
    assert _titles(client.get("/api/events", params={"tags": "music"})) == ["A"]
    assert _titles(client.get("/api/events", params={"tags": ""})) == ["A", "B", "C"]


def test_building_is_exact_match(client: TestClient):
    create_event(client, HOST, title="In Gates", location_building="Gates Hillman Center",
                 date_time=in_hours(5).isoformat())
    create_event(client, HOST, title="In Doherty", location_building="Doherty Hall",
                 date_time=in_hours(6).isoformat())

    assert _titles(
        client.get("/api/events", params={"building": "Gates Hillman Center"})
    ) == ["In Gates"]
    assert _titles(client.get("/api/events", params={"building": "Gates"})) == []


def test_date_filter_uses_campus_calendar_day(client: TestClient):
    # 11:30 PM campus time is already the next day in UTC.
    late = _campus_time(3, 23, 30)
    create_event(client, HOST, title="Late night", date_time=late.isoformat())
    create_event(client, HOST, title="Next morning", date_time=_campus_time(4, 9).isoformat())

    day = late.date().isoformat()
    assert _titles(client.get("/api/events", params={"date": day})) == ["Late night"]


def test_hour_window_overlap_and_start_only(client: TestClient):
    create_event(
        client, HOST, title="Afternoon",
        date_time=_campus_time(3, 13).isoformat(), end_time=_campus_time(3, 15).isoformat(),
    )
    create_event(client, HOST, title="Evening start", date_time=_campus_time(3, 18).isoformat())
    create_event(
        client, HOST, title="Morning",
        date_time=_campus_time(3, 8).isoformat(), end_time=_campus_time(3, 10).isoformat(),
    )

    params = {"startHour": "14", "endHour": "19"}
    assert _titles(client.get("/api/events", params=params)) == ["Afternoon", "Evening start"]

    # An event ending exactly at the window start does not overlap.
    assert _titles(client.get("/api/events", params={"startHour": "10", "endHour": "12"})) == []

    # Only one bound: no window.
    assert len(_titles(client.get("/api/events", params={"startHour": "14"}))) == 3


def test_most_popular_sort_is_stable(client: TestClient):
    create_event(client, HOST, title="Quiet", date_time=in_hours(5).isoformat())
    busy = create_event(client, HOST, title="Busy", date_time=in_hours(6).isoformat())
    create_event(client, HOST, title="Tied", date_time=in_hours(7).isoformat())
    official = create_event(
        client, HOST, title="Official", status="official", date_time=in_hours(8).isoformat()
    )

    for name in ("a", "b", "c"):
        assert set_interest(client, f"{name}@andrew.cmu.edu", busy["id"]).status_code == 200
    assert set_interest(client, "a@andrew.cmu.edu", official["id"]).status_code == 200

    # Counts: Busy 4 prospects, Official 2 attendees, Quiet and Tied 1 prospect each.
    titles = _titles(client.get("/api/events", params={"sortBy": "most_popular"}))
    assert titles == ["Busy", "Official", "Quiet", "Tied"]


def test_malformed_params_fall_back_to_defaults(client: TestClient):
    create_event(client, HOST, title="Only", date_time=in_hours(5).isoformat())

    resp = client.get(
        "/api/events",
        params={
            "page": "abc",
            "filter": "bogus",
            "date": "not-a-date",
            "startHour": "x",
            "endHour": "9",
            "sortBy": "sideways",
        },
    )
    assert _titles(resp) == ["Only"]
    assert client.get("/api/events", params={"page": "-3"}).json()["events"][0]["title"] == "Only"


def test_feed_annotations_for_viewer_and_anonymous(client: TestClient):
    event = create_event(client, HOST, title="Annotated", date_time=in_hours(5).isoformat())
    set_interest(client, "fan@andrew.cmu.edu", event["id"])

    anon = client.get("/api/events").json()["events"][0]
    assert anon["host"]["id"] == HOST
    assert anon["host"]["email"] == HOST
    assert anon["prospect_count"] == 2
    assert anon["attendee_count"] == 0
    assert anon["user_is_prospect"] is False
    assert anon["user_is_attendee"] is False

    mine = client.get("/api/events", headers=auth_headers("fan@andrew.cmu.edu")).json()["events"][0]
    assert mine["user_is_prospect"] is True
    assert mine["user_is_attendee"] is False


def test_invalid_token_on_feed_is_treated_as_anonymous(client: TestClient):
    create_event(client, HOST, title="Open", date_time=in_hours(5).isoformat())
    resp = client.get("/api/events", headers={"Authorization": "Bearer not-a-dev-token"})
    assert _titles(resp) == ["Open"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({}, FeedFilters()),
        ({"status": "OFFICIAL"}, FeedFilters(status=FeedStatus.OFFICIAL)),
        ({"sort_by": "most_popular"}, FeedFilters(sort_by=FeedSort.MOST_POPULAR)),
        ({"tags": " a, ,b "}, FeedFilters(tags=("a", "b"))),
        ({"start_hour": "9", "end_hour": "17"}, FeedFilters(hours=HourWindow(9, 17))),
        ({"start_hour": "9"}, FeedFilters()),
        ({"building": "  "}, FeedFilters()),
    ],
)
def test_filters_from_params(raw, expected):
    assert FeedFilters.from_params(**raw) == expected


def test_hour_window_matches_partial_overlap():
    start = _campus_time(3, 14)
    end = _campus_time(3, 15, 30)
    assert HourWindow(14, 16).matches(start, end)
    assert HourWindow(13, 15).matches(start, end)
    assert not HourWindow(16, 18).matches(start, end)
    assert not HourWindow(9, 17).matches(None, None)


def test_search_for_team_name(client: TestClient):
    create_event(client, HOST, title="Niners vs Steelers Watch Party", date_time=in_hours(5).isoformat())
    create_event(client, HOST, title="Basketball Pickup", date_time=in_hours(6).isoformat())
    assert _titles(client.get("/api/events", params={"search": "steelers"})) == [
        "Niners vs Steelers Watch Party"
    ]
