from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.notification import NotificationKind


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    recipient_contact_id: UUID
    kind: NotificationKind
    title: str
    body: str | None = None
    entity_type: str | None = None
    entity_id: UUID | None = None
    reminder_date: date | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class UnreadCount(BaseModel):
    recipient_contact_id: UUID
    unread: int


class DueReminderRun(BaseModel):
    today: date | None = None
    window_days: int | None = Field(default=None, ge=0, le=60)


class DueReminderResult(BaseModel):
    created: int
