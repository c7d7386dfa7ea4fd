from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.contacts import ContactCreate, ContactRead, ContactUpdate
from app.schemas.interactions import (
    CallTranscriptBase,
    CallTranscriptCreate,
    CallTranscriptRead,
    EmailInteractionBase,
    EmailInteractionCreate,
    EmailInteractionRead,
)
from app.services import contacts as contacts_service
from app.services import interactions as interactions_service

router = APIRouter()


@router.post(
    "/contacts",
    response_model=ContactRead,
    status_code=status.HTTP_201_CREATED,
    tags=["contacts"],
)
def create_contact(payload: ContactCreate, db: Session = Depends(get_db)):
    return contacts_service.contacts.create(db, payload)


@router.get("/contacts", response_model=ListResponse[ContactRead], tags=["contacts"])
def list_contacts(
    contact_type: str | None = None,
    status: str | None = None,
    role: str | None = None,
    q: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return contacts_service.contacts.list_response(
        db, contact_type, status, role, q, order_by, order_dir, limit, offset
    )


@router.get("/contacts/{contact_id}", response_model=ContactRead, tags=["contacts"])
def get_contact(contact_id: str, db: Session = Depends(get_db)):
    return contacts_service.contacts.get(db, contact_id)


@router.patch("/contacts/{contact_id}", response_model=ContactRead, tags=["contacts"])
def update_contact(contact_id: str, payload: ContactUpdate, db: Session = Depends(get_db)):
    return contacts_service.contacts.update(db, contact_id, payload)


@router.delete("/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["contacts"])
def delete_contact(contact_id: str, db: Session = Depends(get_db)):
    contacts_service.contacts.delete(db, contact_id)


@router.post(
    "/contacts/{contact_id}/email-interactions",
    response_model=EmailInteractionRead,
    status_code=status.HTTP_201_CREATED,
    tags=["interactions"],
)
def create_email_interaction(contact_id: str, payload: EmailInteractionBase, db: Session = Depends(get_db)):
    contact = contacts_service.contacts.get(db, contact_id)
    return interactions_service.email_interactions.create(
        db, EmailInteractionCreate(contact_id=contact.id, **payload.model_dump())
    )


@router.get(
    "/contacts/{contact_id}/email-interactions",
    response_model=ListResponse[EmailInteractionRead],
    tags=["interactions"],
)
def list_email_interactions(
    contact_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    contact = contacts_service.contacts.get(db, contact_id)
    return interactions_service.email_interactions.list_response(db, str(contact.id), limit, offset)


@router.delete(
    "/email-interactions/{interaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["interactions"],
)
def delete_email_interaction(interaction_id: str, db: Session = Depends(get_db)):
    interactions_service.email_interactions.delete(db, interaction_id)


@router.post(
    "/contacts/{contact_id}/call-transcripts",
    response_model=CallTranscriptRead,
    status_code=status.HTTP_201_CREATED,
    tags=["interactions"],
)
def create_call_transcript(contact_id: str, payload: CallTranscriptBase, db: Session = Depends(get_db)):
    contact = contacts_service.contacts.get(db, contact_id)
    return interactions_service.call_transcripts.create(
        db, CallTranscriptCreate(contact_id=contact.id, **payload.model_dump())
    )


@router.get(
    "/contacts/{contact_id}/call-transcripts",
    response_model=ListResponse[CallTranscriptRead],
    tags=["interactions"],
)
def list_call_transcripts(
    contact_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    contact = contacts_service.contacts.get(db, contact_id)
    return interactions_service.call_transcripts.list_response(db, str(contact.id), limit, offset)


@router.delete(
    "/call-transcripts/{transcript_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["interactions"],
)
def delete_call_transcript(transcript_id: str, db: Session = Depends(get_db)):
    interactions_service.call_transcripts.delete(db, transcript_id)
