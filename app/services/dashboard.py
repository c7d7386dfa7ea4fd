from datetime import UTC, date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.contacts import Contact, ContactType
from app.models.projects import Project, ProjectStatus, ProjectTask
from app.services.projects import CLOSED_TASK_STATUSES, projects

PROJECTS_DUE_WINDOW_DAYS = 30


def stats(db: Session, today: date | None = None) -> dict:
    today = today or datetime.now(UTC).date()
    total_clients = (
        db.query(func.count(Contact.id)).filter(Contact.contact_type == ContactType.client).scalar() or 0
    )
    prospects = (
        db.query(func.count(Contact.id)).filter(Contact.contact_type == ContactType.prospect).scalar() or 0
    )
    active_projects = (
        db.query(func.count(Project.id))
        .filter(Project.is_active.is_(True))
        .filter(Project.status == ProjectStatus.active)
        .scalar()
        or 0
    )
    overdue_tasks = (
        db.query(func.count(ProjectTask.id))
        .filter(ProjectTask.is_active.is_(True))
        .filter(ProjectTask.status.notin_(CLOSED_TASK_STATUSES))
        .filter(ProjectTask.due_date.isnot(None))
        .filter(ProjectTask.due_date < today)
        .scalar()
        or 0
    )
    return {
        "total_clients": total_clients,
        "active_projects": active_projects,
        "prospects": prospects,
        "overdue_tasks": overdue_tasks,
    }


def projects_due(db: Session, today: date | None = None, days: int = PROJECTS_DUE_WINDOW_DAYS):
    today = today or datetime.now(UTC).date()
    return projects.list_due_between(db, today, today + timedelta(days=days))
