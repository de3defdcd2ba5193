from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meetcmu.api.schemas.chat import MessageOut
from meetcmu.models import Event, EventMessage, Profile
from meetcmu.realtime.chat_relay import chat_relay
from meetcmu.services import notification_service
from meetcmu.services.error_codes import ErrorCode
from meetcmu.services.events_service import get_event
from meetcmu.services.exceptions import PermissionDeniedError, ValidationError
from meetcmu.services.memberships import is_participant

logger = structlog.get_logger(__name__)

MAX_MESSAGE_LENGTH = 2000


def require_participant(db: Session, event: Event, user_id: str | None) -> None:
    if not is_participant(db, event, user_id):
        raise PermissionDeniedError(
            ErrorCode.CHAT_HIDDEN, "chat is only visible to the host, prospects and attendees"
        )


def history(db: Session, event: Event) -> list[EventMessage]:
    return list(
        db.scalars(
            select(EventMessage)
            .where(EventMessage.event_id == event.id)
            .order_by(EventMessage.created_at.asc())
        )
    )


def list_messages(db: Session, user: Profile, event_id: Any) -> list[EventMessage]:
    event = get_event(db, event_id)
    require_participant(db, event, user.id)
    return history(db, event)


def message_frame(message: EventMessage) -> dict[str, Any]:
    return {
        "type": "message",
        "message": MessageOut.model_validate(message).model_dump(mode="json"),
    }


def history_frame(messages: list[EventMessage]) -> dict[str, Any]:
    return {
        "type": "history",
        "messages": [MessageOut.model_validate(m).model_dump(mode="json") for m in messages],
    }


def post_message(db: Session, user: Profile, event_id: Any, text: str) -> EventMessage:
    event = get_event(db, event_id)
    require_participant(db, event, user.id)

    text = (text or "").strip()
    if not text:
        raise ValidationError(ErrorCode.EMPTY_MESSAGE, "message cannot be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            ErrorCode.MESSAGE_TOO_LONG,
            f"message cannot exceed {MAX_MESSAGE_LENGTH} characters",
        )

    message = EventMessage(event_id=event.id, user_id=user.id, message=text)
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("chat_message_posted", event_id=str(event.id), user_id=user.id)

    chat_relay.publish(event.id, message_frame(message))

    # The message is stored; a failed notice must not fail the post.
    try:
        notification_service.notify_new_message(db, event, user, user.id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("chat_notification_failed", event_id=str(event.id))

    return message
