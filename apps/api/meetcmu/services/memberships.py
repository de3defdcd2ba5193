"""Queries over the prospect/attendee relations shared by several services."""
from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from meetcmu.models import Event, EventAttendee, EventProspect
from meetcmu.models.event import EventStatus


@dataclass(frozen=True)
class MembershipCounts:
    prospect_count: int = 0
    attendee_count: int = 0


def membership_model(event: Event) -> type[EventProspect] | type[EventAttendee]:
    if event.status == EventStatus.TENTATIVE:
        return EventProspect
    return EventAttendee


def count_members(db: Session, model, event_id: uuid.UUID) -> int:
    return int(
        db.scalar(select(func.count()).select_from(model).where(model.event_id == event_id)) or 0
    )


def counts_for(db: Session, event_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, MembershipCounts]:
    ids = list(event_ids)
    if not ids:
        return {}

    prospects = dict(
        db.execute(
            select(EventProspect.event_id, func.count())
            .where(EventProspect.event_id.in_(ids))
            .group_by(EventProspect.event_id)
        ).all()
    )
    attendees = dict(
        db.execute(
            select(EventAttendee.event_id, func.count())
            .where(EventAttendee.event_id.in_(ids))
            .group_by(EventAttendee.event_id)
        ).all()
    )
    return {
        event_id: MembershipCounts(
            prospect_count=int(prospects.get(event_id, 0)),
            attendee_count=int(attendees.get(event_id, 0)),
        )
        for event_id in ids
    }


def viewer_memberships(
    db: Session, viewer_id: str | None, event_ids: Iterable[uuid.UUID]
) -> tuple[set[uuid.UUID], set[uuid.UUID]]:
    """Event ids where the viewer is a prospect, and where they are an attendee."""
    ids = list(event_ids)
    if not viewer_id or not ids:
        return set(), set()

    prospect_of = set(
        db.scalars(
            select(EventProspect.event_id).where(
                EventProspect.user_id == viewer_id, EventProspect.event_id.in_(ids)
            )
        )
    )
    attendee_of = set(
        db.scalars(
            select(EventAttendee.event_id).where(
                EventAttendee.user_id == viewer_id, EventAttendee.event_id.in_(ids)
            )
        )
    )
    return prospect_of, attendee_of


def member_ids(db: Session, event: Event) -> list[str]:
    """Prospects of a tentative event, attendees of an official one."""
    model = membership_model(event)
    return list(
        db.scalars(
            select(model.user_id).where(model.event_id == event.id).order_by(model.created_at)
        )
    )


def is_participant(db: Session, event: Event, user_id: str | None) -> bool:
    if not user_id:
        return False
    if event.host_id == user_id:
        return True
    for model in (EventProspect, EventAttendee):
        hit = db.scalar(
            select(model.id).where(model.event_id == event.id, model.user_id == user_id)
        )
        if hit is not None:
            return True
    return False
