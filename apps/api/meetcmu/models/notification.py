from __future__ import annotations

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meetcmu.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from meetcmu.models.event import Event


class NotificationType(str, Enum):
    NEW_MESSAGE = "new_message"
    EVENT_OFFICIAL = "event_official"
    EVENT_STARTING_SOON = "event_starting_soon"
    EVENT_STARTING_NOW = "event_starting_now"
    MILESTONE_5 = "milestone_5_interested"
    MILESTONE_10 = "milestone_10_interested"
    MILESTONE_20 = "milestone_20_interested"
    MILESTONE_50 = "milestone_50_interested"
    MILESTONE_100 = "milestone_100_interested"
    EVENT_UPDATED = "event_updated"
    EVENT_CANCELLED = "event_cancelled"
    EVENT_TIME_CHANGED = "event_time_changed"
    NEW_ATTENDEE = "new_attendee"


class Notification(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    __tablename__ = "notifications"
    __table_args__ = (
        sa.Index("ix_notifications_user_created_at", "user_id", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    # Survives event deletion so cancellation notices stay readable.
    event_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    event: Mapped[Event | None] = relationship()
