from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from meetcmu.api.errors import bad_request, http_error_from_service
from meetcmu.api.schemas.notifications import (
    NotificationCreateIn,
    NotificationListOut,
    NotificationOut,
    NotificationPatchIn,
    SuccessOut,
    SweepOut,
    TriggerMessageIn,
    TriggerMilestoneIn,
)
from meetcmu.auth.deps import CurrentUser, DBSession, require_bearer_secret
from meetcmu.models import Event, Profile
from meetcmu.services import notification_service, reminder_service
from meetcmu.services.error_codes import ErrorCode
from meetcmu.services.exceptions import NotFoundError, ServiceError

router = APIRouter(prefix="/notifications", tags=["notifications"])

internal_guard = Depends(require_bearer_secret("internal_api_secret"))
cron_guard = Depends(require_bearer_secret("cron_secret"))


@router.get("", response_model=NotificationListOut)
def list_notifications(
    user: CurrentUser,
    db: DBSession,
    unread_only: bool = Query(default=False, alias="unreadOnly"),
):
    return {"notifications": notification_service.list_notifications(db, user.id, unread_only)}


@router.patch("", response_model=SuccessOut)
def mark_notifications_read(payload: NotificationPatchIn, user: CurrentUser, db: DBSession):
    try:
        if payload.mark_all_read:
            notification_service.mark_all_read(db, user.id)
        elif payload.notification_id is not None:
            notification_service.mark_read(db, user.id, payload.notification_id)
        else:
            raise bad_request("notificationId or markAllRead is required")
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return SuccessOut()


@router.delete("", response_model=SuccessOut)
def delete_notifications(
    user: CurrentUser,
    db: DBSession,
    notification_id: uuid.UUID | None = Query(default=None, alias="id"),
    delete_all: bool = Query(default=False, alias="deleteAll"),
):
    try:
        if delete_all:
            notification_service.delete_read_notifications(db, user.id)
        elif notification_id is not None:
            notification_service.delete_notification(db, user.id, notification_id)
        else:
            raise bad_request("id or deleteAll is required")
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return SuccessOut()


@router.get("/check-events", response_model=SweepOut, dependencies=[cron_guard])
def check_events(db: DBSession):
    result = reminder_service.run_event_reminder_sweep(db)
    return SweepOut(
        soon_events=result.soon_events,
        now_events=result.now_events,
        soon_notifications_sent=result.soon_notifications_sent,
        now_notifications_sent=result.now_notifications_sent,
    )


@router.post("/create", dependencies=[internal_guard])
def create_notification(payload: NotificationCreateIn, db: DBSession):
    if not payload.user_id or not payload.type or not payload.message:
        raise bad_request("userId, type and message are required")

    notification = notification_service.create_notification(
        db,
        payload.user_id,
        payload.type,
        payload.message,
        event_id=payload.event_id,
        link=payload.link,
        metadata=payload.metadata,
    )
    return {"notification": NotificationOut.model_validate(notification).model_dump(mode="json")}


def _event_or_404(db: DBSession, event_id: uuid.UUID | None) -> Event:
    event = db.get(Event, event_id) if event_id is not None else None
    if event is None:
        raise http_error_from_service(NotFoundError(ErrorCode.EVENT_NOT_FOUND, "event not found"))
    return event


@router.post("/trigger-message", response_model=SuccessOut, dependencies=[internal_guard])
def trigger_message(payload: TriggerMessageIn, db: DBSession):
    if payload.event_id is None or not payload.sender_id:
        raise bad_request("eventId and senderId are required")
    event = _event_or_404(db, payload.event_id)
    sender = db.get(Profile, payload.sender_id)
    notification_service.notify_new_message(db, event, sender, payload.sender_id)
    return SuccessOut()


@router.post("/trigger-milestone", response_model=SuccessOut, dependencies=[internal_guard])
def trigger_milestone(payload: TriggerMilestoneIn, db: DBSession):
    if payload.event_id is None or payload.current_count is None or payload.previous_count is None:
        raise bad_request("eventId, currentCount and previousCount are required")
    event = _event_or_404(db, payload.event_id)
    notification_service.notify_milestone(db, event, payload.current_count, payload.previous_count)
    return SuccessOut()
