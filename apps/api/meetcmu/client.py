"""HTTP client for the MeetCMU API.

Server responses are the only source of truth: the cache is filled from them
and never patched by hand, and every interest toggle ends with a re-fetch of
the event so counts match the database even when the toggle itself failed.
"""
from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)

_TIMEOUT_SECONDS = 10


class MeetCMUError(Exception):
    def __init__(self, status_code: int, code: str | None, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{status_code} {code or ''} {message}".strip())


class ToggleInFlightError(RuntimeError):
    """A toggle for this event has not finished yet."""


@dataclass(frozen=True)
class FeedQuery:
    filter: str = "all"
    search: str = ""
    tags: tuple[str, ...] = ()
    building: str | None = None
    date: str | None = None
    start_hour: int | None = None
    end_hour: int | None = None
    sort_by: str = "upcoming"

    def to_params(self, page: int) -> dict[str, str]:
        params = {"page": str(page), "filter": self.filter, "sortBy": self.sort_by}
        if self.search:
            params["search"] = self.search
        if self.tags:
            params["tags"] = ",".join(self.tags)
        if self.building:
            params["building"] = self.building
        if self.date:
            params["date"] = self.date
        if self.start_hour is not None and self.end_hour is not None:
            params["startHour"] = str(self.start_hour)
            params["endHour"] = str(self.end_hour)
        return params

    def with_changes(self, **changes: Any) -> FeedQuery:
        return replace(self, **changes)


class MeetCMUClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: str | None = None,
        http: httpx.Client | None = None,
    ) -> None:
        self.token = token
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url, timeout=_TIMEOUT_SECONDS)

    def __enter__(self) -> MeetCMUClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self._http.request(method, path, headers=self._headers(), **kwargs)
        if resp.status_code >= 400:
            code, message = None, resp.reason_phrase
            try:
                detail = resp.json().get("detail")
            except ValueError:
                detail = None
            if isinstance(detail, dict):
                code, message = detail.get("code"), detail.get("message", message)
            elif isinstance(detail, str):
                message = detail
            raise MeetCMUError(resp.status_code, code, message)
        if resp.status_code == 204:
            return None
        return resp.json()

    def feed(self, query: FeedQuery, page: int = 0) -> dict[str, Any]:
        return self._request("GET", "/api/events", params=query.to_params(page))

    def get_event(self, event_id: str) -> dict[str, Any]:
        return self._request("GET", f"/api/events/{event_id}")

    def set_interest(self, event_id: str, interested: bool) -> dict[str, Any]:
        return self._request(
            "PUT", f"/api/events/{event_id}/interest", json={"interested": interested}
        )


class EventCache:
    """Events keyed by id, as last returned by the server."""

    def __init__(self) -> None:
        self._events: dict[str, dict[str, Any]] = {}

    def get(self, event_id: str) -> dict[str, Any] | None:
        return self._events.get(str(event_id))

    def store(self, event: dict[str, Any]) -> None:
        self._events[str(event["id"])] = event

    def discard(self, event_id: str) -> None:
        self._events.pop(str(event_id), None)

    def clear(self) -> None:
        self._events.clear()

    def __contains__(self, event_id: object) -> bool:
        return str(event_id) in self._events

    def __len__(self) -> int:
        return len(self._events)


class FeedPaginator:
    def __init__(
        self,
        client: MeetCMUClient,
        cache: EventCache,
        query: FeedQuery | None = None,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.predicate = predicate
        self._query = query or FeedQuery()
        self.reset()

    @property
    def query(self) -> FeedQuery:
        return self._query

    def set_query(self, query: FeedQuery) -> None:
        if query != self._query:
            self._query = query
            self.reset()

    def reset(self) -> None:
        self.events: list[dict[str, Any]] = []
        self.next_page = 0
        self.has_more = True

    def load_more(self) -> list[dict[str, Any]]:
        """Fetch the next page; returns the events it added (after the predicate)."""
        if not self.has_more:
            return []

        data = self.client.feed(self._query, self.next_page)
        self.next_page += 1
        self.has_more = bool(data.get("hasMore"))

        added = []
        for event in data.get("events", []):
            self.cache.store(event)
            if self.predicate is None or self.predicate(event):
                added.append(event)
        self.events.extend(added)
        logger.debug("feed_page_loaded", page=self.next_page - 1, added=len(added))
        return added

    def load_all(self) -> list[dict[str, Any]]:
        while self.has_more:
            self.load_more()
        return self.events


class InterestToggler:
    def __init__(self, client: MeetCMUClient, cache: EventCache) -> None:
        self.client = client
        self.cache = cache
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    def is_in_flight(self, event_id: str) -> bool:
        with self._lock:
            return str(event_id) in self._in_flight

    def toggle(self, event_id: str, interested: bool) -> dict[str, Any]:
        key = str(event_id)
        with self._lock:
            if key in self._in_flight:
                raise ToggleInFlightError(f"interest toggle already running for {key}")
            self._in_flight.add(key)

        try:
            return self.client.set_interest(key, interested)
        finally:
            try:
                self._refresh(key)
            finally:
                with self._lock:
                    self._in_flight.discard(key)

    def _refresh(self, event_id: str) -> None:
        try:
            self.cache.store(self.client.get_event(event_id))
        except MeetCMUError as exc:
            if exc.status_code == 404:
                self.cache.discard(event_id)
                return
            logger.warning("event_refresh_failed", event_id=event_id, status=exc.status_code)
        except httpx.HTTPError as exc:
            logger.warning("event_refresh_failed", event_id=event_id, error=str(exc))
