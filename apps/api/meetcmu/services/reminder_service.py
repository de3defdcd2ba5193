"""Reminder sweep for official events about to start.

Runs from the cron endpoint and from the Celery beat task. Each reminder kind
is sent at most once per event: an EventReminder marker is checked before
dispatch and committed together with the notification rows.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meetcmu.core.campus import utcnow
from meetcmu.models import Event, EventAttendee, EventReminder
from meetcmu.models.event import EventStatus
from meetcmu.models.event_reminder import ReminderKind
from meetcmu.models.notification import NotificationType
from meetcmu.services import notification_service

logger = structlog.get_logger(__name__)

SOON_WINDOW = (timedelta(minutes=55), timedelta(minutes=65))
NOW_WINDOW = (timedelta(0), timedelta(minutes=5))


@dataclass
class SweepResult:
    soon_events: int = 0
    now_events: int = 0
    soon_notifications_sent: int = 0
    now_notifications_sent: int = 0


def _events_in_window(db: Session, now: datetime, window: tuple[timedelta, timedelta]) -> list[Event]:
    lower, upper = window
    return list(
        db.scalars(
            select(Event)
            .where(
                Event.status == EventStatus.OFFICIAL,
                Event.date_time >= now + lower,
                Event.date_time <= now + upper,
            )
            .order_by(Event.date_time)
        ).unique()
    )


def _already_sent(db: Session, event: Event, kind: ReminderKind) -> bool:
    marker = db.scalar(
        select(EventReminder.id).where(
            EventReminder.event_id == event.id, EventReminder.kind == kind.value
        )
    )
    return marker is not None


def _remind(db: Session, event: Event, kind: ReminderKind, now: datetime) -> int:
    attendee_ids = list(
        db.scalars(select(EventAttendee.user_id).where(EventAttendee.event_id == event.id))
    )
    if kind == ReminderKind.STARTING_SOON:
        notification_type = NotificationType.EVENT_STARTING_SOON
        message = f'"{event.title}" starts in 1 hour!'
    else:
        notification_type = NotificationType.EVENT_STARTING_NOW
        message = f'"{event.title}" is starting now!'

    sent = notification_service.dispatch(
        db,
        notification_type,
        attendee_ids,
        message,
        event_id=event.id,
        link=notification_service.event_link(event.id),
        commit=False,
    )
    db.add(EventReminder(event_id=event.id, kind=kind.value, notified_at=now))
    db.commit()
    return sent


def _sweep_window(
    db: Session, now: datetime, window: tuple[timedelta, timedelta], kind: ReminderKind
) -> tuple[int, int]:
    events = _events_in_window(db, now, window)
    sent = 0
    for event in events:
        if _already_sent(db, event, kind):
            continue
        try:
            sent += _remind(db, event, kind, now)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("event_reminder_failed", event_id=str(event.id), kind=kind.value)
    return len(events), sent


def run_event_reminder_sweep(db: Session, now: datetime | None = None) -> SweepResult:
    now = now or utcnow()
    result = SweepResult()
    result.soon_events, result.soon_notifications_sent = _sweep_window(
        db, now, SOON_WINDOW, ReminderKind.STARTING_SOON
    )
    result.now_events, result.now_notifications_sent = _sweep_window(
        db, now, NOW_WINDOW, ReminderKind.STARTING_NOW
    )
    logger.info(
        "event_reminder_sweep",
        soon_events=result.soon_events,
        now_events=result.now_events,
        soon_sent=result.soon_notifications_sent,
        now_sent=result.now_notifications_sent,
    )
    return result
