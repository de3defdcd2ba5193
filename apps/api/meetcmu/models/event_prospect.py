from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meetcmu.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from meetcmu.models.event import Event
    from meetcmu.models.profile import Profile


class EventProspect(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Interest in a tentative event."""

    __tablename__ = "event_prospects"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_event_prospect_event_user"),)

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    event: Mapped[Event] = relationship(back_populates="prospects")
    profile: Mapped[Profile] = relationship()
