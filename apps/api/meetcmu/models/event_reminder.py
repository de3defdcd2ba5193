import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from meetcmu.models.base import Base, UTCDateTime, UUIDPrimaryKeyMixin


class ReminderKind(str, Enum):
    STARTING_SOON = "starting_soon"
    STARTING_NOW = "starting_now"


class EventReminder(Base, UUIDPrimaryKeyMixin):
    """Marks a reminder kind as already sent for an event."""

    __tablename__ = "event_reminders"
    __table_args__ = (UniqueConstraint("event_id", "kind", name="uq_event_reminder_event_kind"),)

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    notified_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
