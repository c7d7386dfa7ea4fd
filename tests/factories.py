import uuid
from datetime import date

from app.models.contacts import Contact, ContactStatus, ContactType
from app.schemas.projects import MilestoneCreate, ProjectTemplateTaskCreate
from app.services import project_templates as templates_service
from app.services import projects as projects_service

ANCHOR = date(2025, 6, 1)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


def make_contact(db_session, first_name="Test", last_name="Client", **kwargs) -> Contact:
    contact = Contact(
        first_name=first_name,
        last_name=last_name,
        email=kwargs.pop("email", _unique_email()),
        **kwargs,
    )
    db_session.add(contact)
    db_session.commit()
    db_session.refresh(contact)
    return contact


def make_team_member(db_session, first_name, last_name, role, status=ContactStatus.active) -> Contact:
    return make_contact(
        db_session,
        first_name=first_name,
        last_name=last_name,
        contact_type=ContactType.team_member,
        status=status,
        role=role,
    )


def add_template_milestone(db_session, template, title, sort_order=0):
    return projects_service.milestones.create(
        db_session,
        MilestoneCreate(template_id=template.id, title=title, sort_order=sort_order),
    )


def add_template_task(db_session, template, title, **kwargs):
    return templates_service.project_template_tasks.create(
        db_session,
        ProjectTemplateTaskCreate(template_id=template.id, title=title, **kwargs),
    )
