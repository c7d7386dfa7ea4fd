from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.contacts import ContactStatus, ContactType


class ContactBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=40)
    company: str | None = Field(default=None, max_length=160)
    position: str | None = Field(default=None, max_length=120)
    contact_type: ContactType = ContactType.client
    status: ContactStatus = ContactStatus.active
    role: str | None = Field(default=None, max_length=80)
    notes: str | None = None


class ContactCreate(ContactBase):
    pass


class ContactUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=80)
    last_name: str | None = Field(default=None, min_length=1, max_length=80)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=40)
    company: str | None = Field(default=None, max_length=160)
    position: str | None = Field(default=None, max_length=120)
    contact_type: ContactType | None = None
    status: ContactStatus | None = None
    role: str | None = Field(default=None, max_length=80)
    notes: str | None = None


class ContactRead(ContactBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    created_at: datetime
    updated_at: datetime
