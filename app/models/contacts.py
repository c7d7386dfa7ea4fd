import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class ContactType(enum.Enum):
    client = "client"
    prospect = "prospect"
    team_member = "team_member"
    strategic_partner = "strategic_partner"


class ContactStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    follow_up = "follow_up"
    converted = "converted"


class Contact(Base):
    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(40))
    company: Mapped[str | None] = mapped_column(String(160))
    position: Mapped[str | None] = mapped_column(String(120))
    contact_type: Mapped[ContactType] = mapped_column(Enum(ContactType), default=ContactType.client)
    status: Mapped[ContactStatus] = mapped_column(Enum(ContactStatus), default=ContactStatus.active)
    # Team-function label for team members, e.g. "estate_attorney".
    role: Mapped[str | None] = mapped_column(String(80), index=True)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    email_interactions = relationship("EmailInteraction", back_populates="contact", cascade="all, delete-orphan")
    call_transcripts = relationship("CallTranscript", back_populates="contact", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
