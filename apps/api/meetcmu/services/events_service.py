from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meetcmu.api.schemas.events import EventCreate, EventUpdate
from meetcmu.core.campus import campus_date
from meetcmu.models import Event, EventAttendee, EventProspect, Notification, Profile
from meetcmu.models.event import EventStatus
from meetcmu.services import notification_service
from meetcmu.services.error_codes import ErrorCode
from meetcmu.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from meetcmu.services.feed_service import FeedEntry, entry_for_event
from meetcmu.services.memberships import count_members, member_ids

logger = structlog.get_logger(__name__)


@dataclass
class EventDetails:
    entry: FeedEntry
    prospects: list[Profile]
    attendees: list[Profile]


def _require_host(user: Profile, event: Event) -> None:
    if event.host_id != user.id:
        raise PermissionDeniedError(ErrorCode.NOT_EVENT_HOST, "only the host can change this event")


def _validate_times(start: datetime | None, end: datetime | None) -> None:
    if start is None or end is None:
        return
    if end <= start:
        raise ValidationError(ErrorCode.INVALID_TIME_RANGE, "End time must be after start time")
    if campus_date(start) != campus_date(end):
        raise ValidationError(
            ErrorCode.DIFFERENT_DAYS, "Start and end times must be on the same date"
        )


def locked_event_query(event_id: Any):
    """Row lock on the event; status changes and membership writes serialize on it."""
    return select(Event).where(Event.id == event_id).with_for_update(of=Event)


def get_event(db: Session, event_id: Any, for_update: bool = False) -> Event:
    if for_update:
        event = db.scalar(locked_event_query(event_id))
    else:
        event = db.get(Event, event_id)
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "event not found")
    return event


def create_event(db: Session, host: Profile, payload: EventCreate) -> Event:
    title = (payload.title or "").strip()
    if not title:
        raise ValidationError(ErrorCode.TITLE_REQUIRED, "title is required")
    _validate_times(payload.date_time, payload.end_time)

    event = Event(
        host_id=host.id,
        title=title,
        description=payload.description,
        date_time=payload.date_time,
        end_time=payload.end_time,
        location=payload.location,
        location_building=payload.location_building,
        tags=payload.tags,
        status=payload.status,
        visibility=payload.visibility,
    )
    db.add(event)
    db.flush()

    # The host starts out as the first prospect or attendee.
    membership = EventProspect if event.status == EventStatus.TENTATIVE else EventAttendee
    db.add(membership(event_id=event.id, user_id=host.id))
    db.commit()
    db.refresh(event)

    logger.info("event_created", event_id=str(event.id), host_id=host.id, status=event.status.value)
    return event


def get_event_details(db: Session, event_id: Any, viewer_id: str | None) -> EventDetails:
    """Direct lookup; private events are reachable here but never in the feed."""
    event = get_event(db, event_id)

    prospects = list(
        db.scalars(
            select(Profile)
            .join(EventProspect, EventProspect.user_id == Profile.id)
            .where(EventProspect.event_id == event.id)
            .order_by(EventProspect.created_at)
        )
    )
    attendees = list(
        db.scalars(
            select(Profile)
            .join(EventAttendee, EventAttendee.user_id == Profile.id)
            .where(EventAttendee.event_id == event.id)
            .order_by(EventAttendee.created_at)
        )
    )
    return EventDetails(
        entry=entry_for_event(db, event, viewer_id),
        prospects=prospects,
        attendees=attendees,
    )


def update_event(db: Session, host: Profile, event_id: Any, patch: EventUpdate) -> Event:
    event = get_event(db, event_id)
    _require_host(host, event)

    patch_data = patch.model_dump(exclude_unset=True)
    if "title" in patch_data:
        patch_data["title"] = (patch_data["title"] or "").strip()
        if not patch_data["title"]:
            raise ValidationError(ErrorCode.TITLE_REQUIRED, "title is required")
    if "visibility" in patch_data and patch_data["visibility"] is None:
        patch_data.pop("visibility")

    new_start = patch_data.get("date_time", event.date_time)
    new_end = patch_data.get("end_time", event.end_time)
    _validate_times(new_start, new_end)

    time_changed = "date_time" in patch_data and patch_data["date_time"] != event.date_time
    changed = {key for key, value in patch_data.items() if getattr(event, key) != value}

    for key, value in patch_data.items():
        setattr(event, key, value)

    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("event_updated", event_id=str(event.id), fields=sorted(changed))

    if changed:
        recipients = [uid for uid in member_ids(db, event) if uid != event.host_id]
        if time_changed and event.date_time is not None:
            notification_service.notify_time_changed(db, event, event.date_time, recipients)
        else:
            notification_service.notify_event_updated(db, event, recipients)

    return event


def delete_event(db: Session, host: Profile, event_id: Any) -> None:
    event = get_event(db, event_id)
    _require_host(host, event)

    recipients = [uid for uid in member_ids(db, event) if uid != event.host_id]
    # Notices and the delete commit together.
    try:
        notification_service.notify_event_cancelled(db, event, recipients, commit=False)
        db.execute(
            update(Notification)
            .where(Notification.event_id == event.id)
            .values(event_id=None)
        )
        db.delete(event)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("event_delete_failed", event_id=str(event_id))
        raise
    logger.info("event_deleted", event_id=str(event_id), host_id=host.id)


def make_official(db: Session, host: Profile, event_id: Any) -> Event:
    """Flip a tentative event to official and move its prospects to attendees.

    One transaction: the status flip, the membership move, the notices to
    former prospects and the host milestone commit together or not at all.
    """
    event = get_event(db, event_id, for_update=True)
    _require_host(host, event)
    if event.status == EventStatus.OFFICIAL:
        raise ConflictError(ErrorCode.EVENT_ALREADY_OFFICIAL, "event is already official")

    try:
        prospect_ids = list(
            db.scalars(
                select(EventProspect.user_id)
                .where(EventProspect.event_id == event.id)
                .order_by(EventProspect.created_at)
            )
        )
        attendee_ids = set(
            db.scalars(select(EventAttendee.user_id).where(EventAttendee.event_id == event.id))
        )
        previous_attendees = len(attendee_ids)

        event.status = EventStatus.OFFICIAL
        db.add(event)

        for user_id in prospect_ids:
            if user_id not in attendee_ids:
                db.add(EventAttendee(event_id=event.id, user_id=user_id))
        db.execute(
            delete(EventProspect)
            .where(EventProspect.event_id == event.id)
            .execution_options(synchronize_session=False)
        )
        db.flush()

        attendee_count = count_members(db, EventAttendee, event.id)
        notification_service.notify_event_official(db, event, prospect_ids, commit=False)
        notification_service.notify_milestone(
            db, event, attendee_count, previous_attendees, commit=False
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("event_official_failed", event_id=str(event_id))
        raise

    db.refresh(event)
    logger.info(
        "event_made_official",
        event_id=str(event.id),
        converted=len(prospect_ids),
        attendees=attendee_count,
    )
    return event


def list_profile_events(db: Session, user_id: str) -> dict[str, list[Event]]:
    hosted = list(
        db.scalars(select(Event).where(Event.host_id == user_id).order_by(Event.date_time))
    )
    interested = list(
        db.scalars(
            select(Event)
            .join(EventProspect, EventProspect.event_id == Event.id)
            .where(EventProspect.user_id == user_id)
            .order_by(Event.date_time)
        )
    )
    attending = list(
        db.scalars(
            select(Event)
            .join(EventAttendee, EventAttendee.event_id == Event.id)
            .where(EventAttendee.user_id == user_id)
            .order_by(Event.date_time)
        )
    )
    return {"hosted": hosted, "interested": interested, "attending": attending}


def parse_event_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "event not found") from exc
