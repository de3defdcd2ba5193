from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from meetcmu.api.schemas.events import SchemaBase


class NotificationEventOut(SchemaBase):
    id: UUID
    title: str
    date_time: datetime | None = None


class NotificationOut(SchemaBase):
    id: UUID
    user_id: str
    event_id: UUID | None = None
    type: str
    message: str
    read: bool
    link: str | None = None
    # Stored on the model as ``meta``; ``metadata`` is reserved by SQLAlchemy.
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime
    event: NotificationEventOut | None = None


class NotificationListOut(SchemaBase):
    notifications: list[NotificationOut]


class NotificationPatchIn(SchemaBase):
    notification_id: UUID | None = Field(default=None, alias="notificationId")
    mark_all_read: bool = Field(default=False, alias="markAllRead")


class NotificationCreateIn(SchemaBase):
    user_id: str | None = Field(default=None, alias="userId")
    event_id: UUID | None = Field(default=None, alias="eventId")
    type: str | None = None
    message: str | None = None
    link: str | None = None
    metadata: dict[str, Any] | None = None


class TriggerMessageIn(SchemaBase):
    event_id: UUID | None = Field(default=None, alias="eventId")
    sender_id: str | None = Field(default=None, alias="senderId")


class TriggerMilestoneIn(SchemaBase):
    event_id: UUID | None = Field(default=None, alias="eventId")
    current_count: int | None = Field(default=None, alias="currentCount")
    previous_count: int | None = Field(default=None, alias="previousCount")


class SuccessOut(SchemaBase):
    success: bool = True


class SweepOut(SchemaBase):
    success: bool = True
    soon_events: int = Field(alias="soonEvents")
    now_events: int = Field(alias="nowEvents")
    soon_notifications_sent: int = Field(alias="soonNotificationsSent")
    now_notifications_sent: int = Field(alias="nowNotificationsSent")
