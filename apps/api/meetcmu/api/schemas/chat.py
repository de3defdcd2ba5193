from __future__ import annotations

from datetime import datetime
from uuid import UUID

from meetcmu.api.schemas.events import HostOut, SchemaBase


class MessageIn(SchemaBase):
    # Stripped and length-checked by the chat service.
    message: str


class MessageOut(SchemaBase):
    id: UUID
    event_id: UUID
    user_id: str
    message: str
    created_at: datetime
    author: HostOut | None = None


class MessageListOut(SchemaBase):
    messages: list[MessageOut]
