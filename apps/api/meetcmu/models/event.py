from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meetcmu.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from meetcmu.models.event_attendee import EventAttendee
    from meetcmu.models.event_message import EventMessage
    from meetcmu.models.event_prospect import EventProspect
    from meetcmu.models.event_reminder import EventReminder
    from meetcmu.models.profile import Profile


class EventStatus(str, Enum):
    TENTATIVE = "tentative"
    OFFICIAL = "official"


class EventVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "events"
    __table_args__ = (
        sa.Index("ix_events_visibility_date_time", "visibility", "date_time"),
    )

    host_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    location_building: Mapped[str | None] = mapped_column(String(200), nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    status: Mapped[EventStatus] = mapped_column(
        sa.Enum(EventStatus, name="event_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EventStatus.TENTATIVE,
    )
    visibility: Mapped[EventVisibility] = mapped_column(
        sa.Enum(
            EventVisibility,
            name="event_visibility",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=EventVisibility.PUBLIC,
    )

    host: Mapped[Profile] = relationship(lazy="joined")
    prospects: Mapped[list[EventProspect]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    attendees: Mapped[list[EventAttendee]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    messages: Mapped[list[EventMessage]] = relationship(
        cascade="all, delete-orphan"
    )
    reminders: Mapped[list[EventReminder]] = relationship(
        cascade="all, delete-orphan"
    )
