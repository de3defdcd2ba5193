from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import model_validator

from meetcmu.api.schemas.events import EventOut, SchemaBase

EDITABLE_FIELDS = ("full_name", "avatar_url", "interests")


class ProfileOut(SchemaBase):
    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    interests: list[str] | None = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(SchemaBase):
    full_name: str | None = None
    avatar_url: str | None = None
    interests: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _require_at_least_one_field(cls, values: Any) -> Any:
        if isinstance(values, dict) and not any(field in values for field in EDITABLE_FIELDS):
            raise ValueError("at least one editable field must be provided")
        return values


class ProfileEventsOut(SchemaBase):
    hosted: list[EventOut]
    interested: list[EventOut]
    attending: list[EventOut]
