"""Notification dispatcher.

Every notification row in the system is written here. Stand-alone fan-out
commits one row at a time so a failing recipient does not block the others;
callers that already hold a transaction pass ``commit=False`` and the rows
commit (or roll back) with them.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meetcmu.core.campus import format_campus_time
from meetcmu.models import Event, Notification, Profile
from meetcmu.models.event import EventStatus
from meetcmu.models.notification import NotificationType
from meetcmu.services.error_codes import ErrorCode
from meetcmu.services.exceptions import NotFoundError
from meetcmu.services.memberships import member_ids

logger = structlog.get_logger(__name__)

MILESTONES: tuple[int, ...] = (5, 10, 20, 50, 100)
NOTIFICATION_LIST_LIMIT = 50


def event_link(event_id: uuid.UUID | str) -> str:
    return f"/{event_id}"


def _type_value(kind: NotificationType | str) -> str:
    return kind.value if isinstance(kind, NotificationType) else kind


def create_notification(
    db: Session,
    user_id: str,
    kind: NotificationType | str,
    message: str,
    event_id: uuid.UUID | None = None,
    link: str | None = None,
    metadata: dict[str, Any] | None = None,
    commit: bool = True,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        event_id=event_id,
        type=_type_value(kind),
        message=message,
        link=link,
        meta=dict(metadata or {}),
        read=False,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    else:
        db.flush()
    return notification


def dispatch(
    db: Session,
    kind: NotificationType | str,
    recipients: Iterable[str],
    message: str,
    event_id: uuid.UUID | None = None,
    link: str | None = None,
    metadata: dict[str, Any] | None = None,
    commit: bool = True,
) -> int:
    """Insert one notification per distinct recipient; returns rows written."""
    delivered = 0
    seen: set[str] = set()
    for user_id in recipients:
        if not user_id or user_id in seen:
            continue
        seen.add(user_id)

        if not commit:
            create_notification(db, user_id, kind, message, event_id, link, metadata, commit=False)
            delivered += 1
            continue

        try:
            create_notification(db, user_id, kind, message, event_id, link, metadata)
            delivered += 1
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "notification_delivery_failed",
                type=_type_value(kind),
                user_id=user_id,
                event_id=str(event_id) if event_id else None,
            )

    logger.info(
        "notifications_dispatched",
        type=_type_value(kind),
        event_id=str(event_id) if event_id else None,
        delivered=delivered,
        requested=len(seen),
    )
    return delivered


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


def crossed_milestone(current_count: int, previous_count: int) -> int | None:
    """Smallest threshold reached by ``current_count`` but not ``previous_count``."""
    for milestone in MILESTONES:
        if previous_count < milestone <= current_count:
            return milestone
    return None


def notify_milestone(
    db: Session,
    event: Event,
    current_count: int,
    previous_count: int,
    commit: bool = True,
) -> Notification | None:
    milestone = crossed_milestone(current_count, previous_count)
    if milestone is None:
        return None

    verb = "interested" if event.status == EventStatus.TENTATIVE else "joined"
    return create_notification(
        db,
        event.host_id,
        f"milestone_{milestone}_interested",
        f'{milestone} people are {verb} in "{event.title}"!',
        event_id=event.id,
        link=event_link(event.id),
        metadata={"count": current_count, "milestone": milestone},
        commit=commit,
    )


# ---------------------------------------------------------------------------
# Event lifecycle notices
# ---------------------------------------------------------------------------


def notify_new_message(db: Session, event: Event, sender: Profile | None, sender_id: str) -> int:
    sender_name = (sender.full_name or sender.email) if sender else None
    sender_name = sender_name or "Someone"

    recipients = member_ids(db, event)
    if event.host_id not in recipients:
        recipients.append(event.host_id)

    return dispatch(
        db,
        NotificationType.NEW_MESSAGE,
        [user_id for user_id in recipients if user_id != sender_id],
        f'{sender_name} sent a message in "{event.title}"',
        event_id=event.id,
        link=event_link(event.id),
        metadata={"senderId": sender_id, "senderName": sender_name},
    )


def notify_event_official(
    db: Session, event: Event, former_prospect_ids: list[str], commit: bool = True
) -> int:
    return dispatch(
        db,
        NotificationType.EVENT_OFFICIAL,
        former_prospect_ids,
        f'"{event.title}" is now official!',
        event_id=event.id,
        link=event_link(event.id),
        commit=commit,
    )


def notify_time_changed(
    db: Session, event: Event, new_start: datetime, recipients: list[str]
) -> int:
    return dispatch(
        db,
        NotificationType.EVENT_TIME_CHANGED,
        recipients,
        f'"{event.title}" time changed to {format_campus_time(new_start)}',
        event_id=event.id,
        link=event_link(event.id),
        metadata={"newDateTime": new_start.isoformat()},
    )


def notify_event_updated(db: Session, event: Event, recipients: list[str]) -> int:
    return dispatch(
        db,
        NotificationType.EVENT_UPDATED,
        recipients,
        f'"{event.title}" was updated',
        event_id=event.id,
        link=event_link(event.id),
    )


def notify_event_cancelled(
    db: Session, event: Event, recipients: list[str], commit: bool = True
) -> int:
    return dispatch(
        db,
        NotificationType.EVENT_CANCELLED,
        recipients,
        f'"{event.title}" has been cancelled',
        event_id=event.id,
        commit=commit,
    )


def notify_new_attendee(db: Session, event: Event, attendee: Profile) -> int:
    if attendee.id == event.host_id:
        return 0
    name = attendee.full_name or attendee.email or "Someone"
    return dispatch(
        db,
        NotificationType.NEW_ATTENDEE,
        [event.host_id],
        f'{name} joined "{event.title}"',
        event_id=event.id,
        link=event_link(event.id),
        metadata={"attendeeId": attendee.id},
    )


# ---------------------------------------------------------------------------
# Recipient-facing queries
# ---------------------------------------------------------------------------


def list_notifications(db: Session, user_id: str, unread_only: bool = False) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc()).limit(NOTIFICATION_LIST_LIMIT)
    return list(db.scalars(stmt))


def mark_read(db: Session, user_id: str, notification_id: uuid.UUID) -> None:
    result = db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount == 0:
        raise NotFoundError(ErrorCode.NOTIFICATION_NOT_FOUND, "notification not found")


def mark_all_read(db: Session, user_id: str) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


def delete_notification(db: Session, user_id: str, notification_id: uuid.UUID) -> None:
    result = db.execute(
        delete(Notification).where(
            Notification.id == notification_id, Notification.user_id == user_id
        ).execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount == 0:
        raise NotFoundError(ErrorCode.NOTIFICATION_NOT_FOUND, "notification not found")


def delete_read_notifications(db: Session, user_id: str) -> int:
    result = db.execute(
        delete(Notification).where(Notification.user_id == user_id, Notification.read.is_(True))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount
