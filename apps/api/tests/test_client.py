from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from meetcmu.client import (
    EventCache,
    FeedPaginator,
    FeedQuery,
    InterestToggler,
    MeetCMUClient,
    MeetCMUError,
    ToggleInFlightError,
)
from tests.helpers import create_event, in_hours

HOST = "host@andrew.cmu.edu"
FAN = "fan@andrew.cmu.edu"


@pytest.fixture
def api(client: TestClient) -> MeetCMUClient:
    return MeetCMUClient(token=f"dev_{FAN}", http=client)


def test_feed_query_params():
    query = FeedQuery(tags=("food", "music"), start_hour=9, end_hour=17, search="demo")
    assert query.to_params(2) == {
        "page": "2",
        "filter": "all",
        "sortBy": "upcoming",
        "search": "demo",
        "tags": "food,music",
        "startHour": "9",
        "endHour": "17",
    }
    # A lone bound is not sent.
    assert "startHour" not in FeedQuery(start_hour=9).to_params(0)


def test_paginator_loads_pages_until_exhausted(client: TestClient, api: MeetCMUClient):
    for i in range(13):
        create_event(client, HOST, title=f"E{i:02d}", date_time=in_hours(5 + i).isoformat())

    cache = EventCache()
    pager = FeedPaginator(api, cache)

    assert len(pager.load_more()) == 10
    assert pager.has_more is True
    assert len(pager.load_more()) == 3
    assert pager.has_more is False
    assert pager.load_more() == []

    assert [e["title"] for e in pager.events] == [f"E{i:02d}" for i in range(13)]
    assert len(cache) == 13


def test_paginator_predicate_and_query_reset(client: TestClient, api: MeetCMUClient):
    create_event(client, HOST, title="Tagged", tags=["food"], date_time=in_hours(5).isoformat())
    create_event(client, HOST, title="Plain", date_time=in_hours(6).isoformat())

    cache = EventCache()
    pager = FeedPaginator(api, cache, predicate=lambda e: e["title"] != "Plain")
    assert [e["title"] for e in pager.load_all()] == ["Tagged"]
    # The predicate is local only: every fetched event still lands in the cache.
    assert len(cache) == 2

    pager.set_query(pager.query.with_changes(tags=("food",)))
    assert pager.events == []
    assert pager.has_more is True
    assert [e["title"] for e in pager.load_all()] == ["Tagged"]


def test_toggler_refreshes_cache_from_server(client: TestClient, api: MeetCMUClient):
    event = create_event(client, HOST)
    cache = EventCache()
    toggler = InterestToggler(api, cache)

    result = toggler.toggle(event["id"], True)
    assert result["prospect_count"] == 2
    assert cache.get(event["id"])["prospect_count"] == 2
    assert cache.get(event["id"])["user_is_prospect"] is True
    assert toggler.is_in_flight(event["id"]) is False


def test_toggler_refreshes_even_when_toggle_fails(client: TestClient, api: MeetCMUClient):
    event = create_event(client, HOST)
    cache = EventCache()
    toggler = InterestToggler(api, cache)
    toggler.toggle(event["id"], True)

    # Stale entry, as if another tab had cached an older count.
    cache.store({**cache.get(event["id"]), "prospect_count": 99})

    with pytest.raises(MeetCMUError) as exc:
        toggler.toggle(event["id"], True)
    assert exc.value.status_code == 409
    assert exc.value.code == "ALREADY_INTERESTED"

    assert cache.get(event["id"])["prospect_count"] == 2
    assert toggler.is_in_flight(event["id"]) is False


def test_toggler_refuses_concurrent_toggle_for_same_event(client: TestClient):
    event = create_event(client, HOST)
    cache = EventCache()
    inner_errors: list[Exception] = []

    class ReentrantClient(MeetCMUClient):
        def set_interest(self, event_id, interested):
            try:
                toggler.toggle(event_id, not interested)
            except ToggleInFlightError as exc:
                inner_errors.append(exc)
            return super().set_interest(event_id, interested)

    toggler = InterestToggler(ReentrantClient(token=f"dev_{FAN}", http=client), cache)
    toggler.toggle(event["id"], True)

    assert len(inner_errors) == 1
    assert cache.get(event["id"])["prospect_count"] == 2


def test_toggler_drops_deleted_events_from_cache(client: TestClient, api: MeetCMUClient):
    event = create_event(client, HOST)
    cache = EventCache()
    cache.store(event)
    client.delete(f"/api/events/{event['id']}", headers={"Authorization": f"Bearer dev_{HOST}"})

    with pytest.raises(MeetCMUError) as exc:
        InterestToggler(api, cache).toggle(event["id"], True)
    assert exc.value.status_code == 404
    assert event["id"] not in cache
