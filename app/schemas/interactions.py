from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.interactions import EmailDirection


class EmailInteractionBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    direction: EmailDirection = EmailDirection.inbound
    subject: str = Field(min_length=1, max_length=255)
    body: str | None = None
    sender: str | None = Field(default=None, max_length=255)
    recipients: list[str] | None = None
    sent_at: datetime | None = None


class EmailInteractionCreate(EmailInteractionBase):
    contact_id: UUID


class EmailInteractionRead(EmailInteractionCreate):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    created_at: datetime


class CallTranscriptBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    title: str = Field(min_length=1, max_length=200)
    transcript: str | None = None
    summary: str | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    call_date: datetime | None = None


class CallTranscriptCreate(CallTranscriptBase):
    contact_id: UUID


class CallTranscriptRead(CallTranscriptCreate):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    created_at: datetime
