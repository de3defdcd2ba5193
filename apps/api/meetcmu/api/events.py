from __future__ import annotations

from fastapi import APIRouter, Query, Response

from meetcmu.api.errors import http_error_from_service
from meetcmu.api.schemas.events import (
    EventCreate,
    EventDetailOut,
    EventOut,
    EventUpdate,
    FeedEventOut,
    FeedOut,
    HostOut,
    InterestIn,
    InterestOut,
)
from meetcmu.auth.deps import CurrentUser, DBSession, OptionalUser
from meetcmu.services import events_service, feed_service, interest_service
from meetcmu.services.exceptions import ServiceError
from meetcmu.services.feed_service import FeedEntry, FeedFilters

router = APIRouter(prefix="/events", tags=["events"])


def _feed_event_out(entry: FeedEntry) -> FeedEventOut:
    base = EventOut.model_validate(entry.event).model_dump()
    return FeedEventOut(
        **base,
        host=HostOut.model_validate(entry.host) if entry.host else None,
        prospect_count=entry.counts.prospect_count,
        attendee_count=entry.counts.attendee_count,
        user_is_prospect=entry.user_is_prospect,
        user_is_attendee=entry.user_is_attendee,
    )


@router.get("", response_model=FeedOut)
def list_events(
    db: DBSession,
    user: OptionalUser,
    page: str | None = None,
    status_filter: str | None = Query(default=None, alias="filter"),
    search: str | None = None,
    tags: str | None = None,
    building: str | None = None,
    on_date: str | None = Query(default=None, alias="date"),
    start_hour: str | None = Query(default=None, alias="startHour"),
    end_hour: str | None = Query(default=None, alias="endHour"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
):
    filters = FeedFilters.from_params(
        status=status_filter,
        search=search,
        tags=tags,
        building=building,
        on_date=on_date,
        start_hour=start_hour,
        end_hour=end_hour,
        sort_by=sort_by,
    )
    result = feed_service.query_feed(
        db,
        feed_service.parse_page(page),
        filters,
        viewer_id=user.id if user else None,
    )
    return FeedOut(
        events=[_feed_event_out(entry) for entry in result.entries],
        has_more=result.has_more,
    )


@router.post("", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, user: CurrentUser, db: DBSession):
    try:
        return events_service.create_event(db, user, payload)
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.get("/{event_id}", response_model=EventDetailOut)
def get_event(event_id: str, db: DBSession, user: OptionalUser):
    try:
        details = events_service.get_event_details(
            db, events_service.parse_event_id(event_id), user.id if user else None
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err

    base = _feed_event_out(details.entry).model_dump()
    return EventDetailOut(
        **base,
        prospects=[HostOut.model_validate(p) for p in details.prospects],
        attendees=[HostOut.model_validate(p) for p in details.attendees],
    )


@router.patch("/{event_id}", response_model=EventOut)
def update_event(event_id: str, payload: EventUpdate, user: CurrentUser, db: DBSession):
    try:
        return events_service.update_event(
            db, user, events_service.parse_event_id(event_id), payload
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.delete("/{event_id}", status_code=204)
def delete_event(event_id: str, user: CurrentUser, db: DBSession):
    try:
        events_service.delete_event(db, user, events_service.parse_event_id(event_id))
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return Response(status_code=204)


@router.post("/{event_id}/official", response_model=FeedEventOut)
def make_official(event_id: str, user: CurrentUser, db: DBSession):
    try:
        event = events_service.make_official(db, user, events_service.parse_event_id(event_id))
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return _feed_event_out(feed_service.entry_for_event(db, event, user.id))


@router.put("/{event_id}/interest", response_model=InterestOut)
def set_interest(event_id: str, payload: InterestIn, user: CurrentUser, db: DBSession):
    try:
        result = interest_service.set_interest(
            db, user, events_service.parse_event_id(event_id), payload.interested
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err

    return InterestOut(
        event_id=result.event.id,
        status=result.event.status,
        interested=result.interested,
        prospect_count=result.counts.prospect_count,
        attendee_count=result.counts.attendee_count,
        user_is_prospect=result.user_is_prospect,
        user_is_attendee=result.user_is_attendee,
    )
