"""Event feed: filter, sort and paginate upcoming public events.

Visibility, the "upcoming only" cut-off, status, search, building and
calendar-date filters are pushed down to the database. Tag membership and the
campus-local hour window are evaluated on the fetched rows, followed by the
popularity sort and the page slice.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

import structlog
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from meetcmu.core.campus import campus_day_bounds, campus_hour, utcnow
from meetcmu.models import Event, Profile
from meetcmu.models.event import EventStatus, EventVisibility
from meetcmu.services.memberships import MembershipCounts, counts_for, viewer_memberships

logger = structlog.get_logger(__name__)

EVENTS_PER_PAGE = 10


class FeedStatus(str, Enum):
    ALL = "all"
    TENTATIVE = "tentative"
    OFFICIAL = "official"


class FeedSort(str, Enum):
    UPCOMING = "upcoming"
    MOST_POPULAR = "most_popular"


def _enum_or_default(enum_cls, raw: str | None, default):
    try:
        return enum_cls((raw or "").strip().lower())
    except ValueError:
        return default


def _int_or_none(raw: str | None) -> int | None:
    try:
        return int(raw) if raw is not None and raw.strip() else None
    except ValueError:
        return None


def _date_or_none(raw: str | None) -> date | None:
    try:
        return date.fromisoformat(raw.strip()) if raw and raw.strip() else None
    except ValueError:
        return None


@dataclass(frozen=True)
class HourWindow:
    start_hour: int
    end_hour: int

    def matches(self, start: datetime | None, end: datetime | None) -> bool:
        if start is None:
            return False
        start_hour = campus_hour(start)
        if end is None:
            return self.start_hour <= start_hour < self.end_hour
        return start_hour < self.end_hour and campus_hour(end) > self.start_hour


@dataclass(frozen=True)
class FeedFilters:
    status: FeedStatus = FeedStatus.ALL
    search: str = ""
    tags: tuple[str, ...] = ()
    building: str | None = None
    on_date: date | None = None
    hours: HourWindow | None = None
    sort_by: FeedSort = FeedSort.UPCOMING

    @classmethod
    def from_params(
        cls,
        status: str | None = None,
        search: str | None = None,
        tags: str | None = None,
        building: str | None = None,
        on_date: str | None = None,
        start_hour: str | None = None,
        end_hour: str | None = None,
        sort_by: str | None = None,
    ) -> FeedFilters:
        """Lenient parsing: anything unusable falls back to its default."""
        start = _int_or_none(start_hour)
        end = _int_or_none(end_hour)
        return cls(
            status=_enum_or_default(FeedStatus, status, FeedStatus.ALL),
            search=(search or "").strip(),
            tags=tuple(t.strip() for t in (tags or "").split(",") if t.strip()),
            building=(building or "").strip() or None,
            on_date=_date_or_none(on_date),
            hours=HourWindow(start, end) if start is not None and end is not None else None,
            sort_by=_enum_or_default(FeedSort, sort_by, FeedSort.UPCOMING),
        )


@dataclass
class FeedEntry:
    event: Event
    host: Profile | None
    counts: MembershipCounts = field(default_factory=MembershipCounts)
    user_is_prospect: bool = False
    user_is_attendee: bool = False

    @property
    def popularity(self) -> int:
        if self.event.status == EventStatus.TENTATIVE:
            return self.counts.prospect_count
        return self.counts.attendee_count


@dataclass
class FeedPage:
    entries: list[FeedEntry]
    has_more: bool


def matches_tags(event_tags: list[str] | None, selected: tuple[str, ...]) -> bool:
    if not selected:
        return True
    return bool(set(event_tags or ()) & set(selected))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _base_query(filters: FeedFilters, now: datetime):
    stmt = select(Event).where(
        Event.visibility == EventVisibility.PUBLIC,
        Event.date_time >= now,
    )

    if filters.status != FeedStatus.ALL:
        stmt = stmt.where(Event.status == EventStatus(filters.status.value))

    if filters.search:
        like = f"%{_escape_like(filters.search)}%"
        stmt = stmt.where(
            or_(
                Event.title.ilike(like, escape="\\"),
                Event.description.ilike(like, escape="\\"),
                Event.location.ilike(like, escape="\\"),
                Event.location_building.ilike(like, escape="\\"),
            )
        )

    if filters.building:
        stmt = stmt.where(Event.location_building == filters.building)

    if filters.on_date:
        day_start, day_end = campus_day_bounds(filters.on_date)
        stmt = stmt.where(Event.date_time >= day_start, Event.date_time < day_end)

    return stmt.order_by(Event.date_time.asc().nulls_last(), Event.created_at.asc())


def query_feed(
    db: Session,
    page: int,
    filters: FeedFilters,
    viewer_id: str | None = None,
    now: datetime | None = None,
) -> FeedPage:
    page = max(page, 0)
    now = now or utcnow()

    events = list(db.scalars(_base_query(filters, now)).unique())
    events = [
        ev
        for ev in events
        if matches_tags(ev.tags, filters.tags)
        and (filters.hours is None or filters.hours.matches(ev.date_time, ev.end_time))
    ]

    ids = [ev.id for ev in events]
    counts = counts_for(db, ids)
    prospect_of, attendee_of = viewer_memberships(db, viewer_id, ids)

    entries = [
        FeedEntry(
            event=ev,
            host=ev.host,
            counts=counts.get(ev.id, MembershipCounts()),
            user_is_prospect=ev.id in prospect_of,
            user_is_attendee=ev.id in attendee_of,
        )
        for ev in events
    ]

    if filters.sort_by == FeedSort.MOST_POPULAR:
        entries.sort(key=lambda entry: entry.popularity, reverse=True)

    offset = page * EVENTS_PER_PAGE
    logger.debug(
        "feed_queried",
        page=page,
        matched=len(entries),
        status=filters.status.value,
        sort_by=filters.sort_by.value,
    )
    return FeedPage(
        entries=entries[offset : offset + EVENTS_PER_PAGE],
        has_more=offset + EVENTS_PER_PAGE < len(entries),
    )


def entry_for_event(db: Session, event: Event, viewer_id: str | None) -> FeedEntry:
    counts = counts_for(db, [event.id])
    prospect_of, attendee_of = viewer_memberships(db, viewer_id, [event.id])
    return FeedEntry(
        event=event,
        host=event.host,
        counts=counts.get(event.id, MembershipCounts()),
        user_is_prospect=event.id in prospect_of,
        user_is_attendee=event.id in attendee_of,
    )


def parse_page(raw: str | None) -> int:
    value = _int_or_none(raw)
    return value if value is not None and value >= 0 else 0
