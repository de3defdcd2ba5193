from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from meetcmu.core.campus import CAMPUS_TZ
from meetcmu.models.event import EventStatus, EventVisibility


def _campus_aware(value: datetime | None) -> datetime | None:
    """Naive datetimes come from datetime-local inputs and mean campus time."""
    if value is None:
        return value
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return CAMPUS_TZ.localize(value)
    return value


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore", populate_by_name=True)


class EventFieldsMixin(BaseModel):
    @field_validator("date_time", "end_time", mode="after", check_fields=False)
    @classmethod
    def _validate_tz(cls, value: datetime | None) -> datetime | None:
        return _campus_aware(value)

    @field_validator(
        "description", "location", "location_building", mode="after", check_fields=False
    )
    @classmethod
    def _validate_text(cls, value: str | None) -> str | None:
        return _clean_text(value)

    @field_validator("tags", mode="after", check_fields=False)
    @classmethod
    def _validate_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        cleaned: list[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned or None


class EventCreate(EventFieldsMixin, SchemaBase):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    date_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    location_building: str | None = None
    tags: list[str] | None = None
    status: EventStatus = EventStatus.TENTATIVE
    visibility: EventVisibility = EventVisibility.PUBLIC


class EventUpdate(EventFieldsMixin, SchemaBase):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    date_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    location_building: str | None = None
    tags: list[str] | None = None
    visibility: EventVisibility | None = None


class HostOut(SchemaBase):
    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None


class EventOut(SchemaBase):
    id: UUID
    host_id: str
    title: str
    description: str | None = None
    date_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    location_building: str | None = None
    tags: list[str] | None = None
    status: EventStatus
    visibility: EventVisibility
    created_at: datetime
    updated_at: datetime


class FeedEventOut(EventOut):
    host: HostOut | None = None
    prospect_count: int = 0
    attendee_count: int = 0
    user_is_prospect: bool = False
    user_is_attendee: bool = False


class EventDetailOut(FeedEventOut):
    prospects: list[HostOut] = Field(default_factory=list)
    attendees: list[HostOut] = Field(default_factory=list)


class FeedOut(SchemaBase):
    events: list[FeedEventOut]
    has_more: bool = Field(alias="hasMore")


class InterestIn(SchemaBase):
    interested: bool


class InterestOut(SchemaBase):
    event_id: UUID
    status: EventStatus
    interested: bool
    prospect_count: int
    attendee_count: int
    user_is_prospect: bool
    user_is_attendee: bool
