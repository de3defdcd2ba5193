from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from meetcmu.models import Event, EventAttendee, Profile
from meetcmu.models.event import EventStatus
from meetcmu.services import notification_service
from meetcmu.services.error_codes import ErrorCode
from meetcmu.services.events_service import get_event
from meetcmu.services.exceptions import ConflictError
from meetcmu.services.memberships import (
    MembershipCounts,
    count_members,
    counts_for,
    membership_model,
    viewer_memberships,
)

logger = structlog.get_logger(__name__)


@dataclass
class InterestResult:
    event: Event
    interested: bool
    counts: MembershipCounts
    user_is_prospect: bool
    user_is_attendee: bool


def _result(db: Session, event: Event, user: Profile, interested: bool) -> InterestResult:
    # Counts are re-read after the commit rather than adjusted in place.
    counts = counts_for(db, [event.id]).get(event.id, MembershipCounts())
    prospect_of, attendee_of = viewer_memberships(db, user.id, [event.id])
    return InterestResult(
        event=event,
        interested=interested,
        counts=counts,
        user_is_prospect=event.id in prospect_of,
        user_is_attendee=event.id in attendee_of,
    )


def set_interest(db: Session, user: Profile, event_id: Any, interested: bool) -> InterestResult:
    """Add or remove the user's prospect/attendee row, depending on event status.

    Inserts are plain inserts: a second "interested" for the same user hits the
    uniqueness constraint and surfaces as a conflict. Removing a row that is
    not there is a no-op. The event row is locked so a concurrent transition
    to official cannot move memberships underneath the toggle.
    """
    event = get_event(db, event_id, for_update=True)
    model = membership_model(event)

    if not interested:
        db.execute(
            delete(model)
            .where(model.event_id == event.id, model.user_id == user.id)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        logger.info("interest_removed", event_id=str(event.id), user_id=user.id)
        return _result(db, event, user, interested=False)

    db.add(model(event_id=event.id, user_id=user.id))
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            ErrorCode.ALREADY_INTERESTED, "already interested in this event"
        ) from exc

    current = count_members(db, model, event.id)
    logger.info(
        "interest_added",
        event_id=str(event.id),
        user_id=user.id,
        status=event.status.value,
        count=current,
    )

    # The membership is already committed; a failed notice must not undo it.
    try:
        notification_service.notify_milestone(db, event, current, current - 1)
        if event.status == EventStatus.OFFICIAL and model is EventAttendee:
            notification_service.notify_new_attendee(db, event, user)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "interest_notification_failed", event_id=str(event.id), user_id=user.id
        )

    return _result(db, event, user, interested=True)
