import logging

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.contacts import Contact, ContactStatus, ContactType
from app.models.notification import Notification
from app.models.projects import Project, ProjectComment, ProjectTaskAssignee, ProjectTaskComment
from app.schemas.contacts import ContactCreate, ContactUpdate
from app.services.activity import log_activity
from app.services.common import apply_ordering, apply_pagination, coerce_uuid, validate_enum
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


class Contacts(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: ContactCreate):
        data = payload.model_dump()
        data["email"] = _normalize_email(data.get("email"))
        contact = Contact(**data)
        db.add(contact)
        db.flush()
        log_activity(db, "created_contact", "contact", contact.id, description=f"Created contact {contact.full_name}")
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def get(db: Session, contact_id: str):
        contact = db.get(Contact, coerce_uuid(contact_id))
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        return contact

    @staticmethod
    def list(
        db: Session,
        contact_type: str | None,
        status: str | None,
        role: str | None,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(Contact)
        if contact_type:
            query = query.filter(Contact.contact_type == validate_enum(contact_type, ContactType, "contact_type"))
        if status:
            query = query.filter(Contact.status == validate_enum(status, ContactStatus, "status"))
        if role:
            query = query.filter(Contact.role == role)
        if search and search.strip():
            like_term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Contact.first_name.ilike(like_term),
                    Contact.last_name.ilike(like_term),
                    Contact.email.ilike(like_term),
                    Contact.company.ilike(like_term),
                )
            )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Contact.created_at,
                "last_name": Contact.last_name,
                "first_name": Contact.first_name,
                "company": Contact.company,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, contact_id: str, payload: ContactUpdate):
        contact = Contacts.get(db, contact_id)
        data = payload.model_dump(exclude_unset=True)
        if "email" in data:
            data["email"] = _normalize_email(data["email"])
        for key, value in data.items():
            setattr(contact, key, value)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def delete(db: Session, contact_id: str):
        contact = Contacts.get(db, contact_id)
        in_use = db.query(Project.id).filter(Project.client_id == contact.id).first()
        if in_use:
            raise HTTPException(status_code=400, detail="Cannot delete contact that is a project client")
        db.query(ProjectTaskAssignee).filter(ProjectTaskAssignee.contact_id == contact.id).delete(
            synchronize_session=False
        )
        db.query(Notification).filter(Notification.recipient_contact_id == contact.id).delete(
            synchronize_session=False
        )
        for model in (ProjectTaskComment, ProjectComment):
            db.query(model).filter(model.author_contact_id == contact.id).update(
                {model.author_contact_id: None}, synchronize_session=False
            )
        db.delete(contact)
        db.commit()
        logger.info("contact_deleted contact_id=%s", contact_id)


contacts = Contacts()
