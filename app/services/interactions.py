from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.contacts import Contact
from app.models.interactions import CallTranscript, EmailInteraction
from app.schemas.interactions import CallTranscriptCreate, EmailInteractionCreate
from app.services.activity import log_activity
from app.services.common import apply_pagination, coerce_uuid, ensure_exists
from app.services.response import ListResponseMixin


class EmailInteractions(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: EmailInteractionCreate):
        contact = ensure_exists(db, Contact, payload.contact_id, "Contact not found")
        interaction = EmailInteraction(**payload.model_dump())
        db.add(interaction)
        db.flush()
        log_activity(
            db,
            "logged_email",
            "contact",
            contact.id,
            description=f"Email: {interaction.subject}",
            metadata={"email_interaction_id": str(interaction.id)},
        )
        db.commit()
        db.refresh(interaction)
        return interaction

    @staticmethod
    def get(db: Session, interaction_id: str):
        interaction = db.get(EmailInteraction, coerce_uuid(interaction_id))
        if not interaction:
            raise HTTPException(status_code=404, detail="Email interaction not found")
        return interaction

    @staticmethod
    def list(db: Session, contact_id: str | None, limit: int, offset: int):
        query = db.query(EmailInteraction)
        if contact_id:
            query = query.filter(EmailInteraction.contact_id == coerce_uuid(contact_id))
        query = query.order_by(EmailInteraction.created_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def delete(db: Session, interaction_id: str):
        interaction = EmailInteractions.get(db, interaction_id)
        db.delete(interaction)
        db.commit()


class CallTranscripts(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: CallTranscriptCreate):
        contact = ensure_exists(db, Contact, payload.contact_id, "Contact not found")
        transcript = CallTranscript(**payload.model_dump())
        db.add(transcript)
        db.flush()
        log_activity(
            db,
            "logged_call",
            "contact",
            contact.id,
            description=f"Call: {transcript.title}",
            metadata={"call_transcript_id": str(transcript.id)},
        )
        db.commit()
        db.refresh(transcript)
        return transcript

    @staticmethod
    def get(db: Session, transcript_id: str):
        transcript = db.get(CallTranscript, coerce_uuid(transcript_id))
        if not transcript:
            raise HTTPException(status_code=404, detail="Call transcript not found")
        return transcript

    @staticmethod
    def list(db: Session, contact_id: str | None, limit: int, offset: int):
        query = db.query(CallTranscript)
        if contact_id:
            query = query.filter(CallTranscript.contact_id == coerce_uuid(contact_id))
        query = query.order_by(CallTranscript.created_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def delete(db: Session, transcript_id: str):
        transcript = CallTranscripts.get(db, transcript_id)
        db.delete(transcript)
        db.commit()


email_interactions = EmailInteractions()
call_transcripts = CallTranscripts()
