import logging
import re
from datetime import UTC, date, datetime, timedelta
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.models.contacts import Contact, ContactStatus, ContactType
from app.models.notification import Notification, NotificationKind
from app.models.projects import ProjectTask, TaskStatus
from app.services.common import apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z][\w'-]*(?:\.[A-Za-z][\w'-]*)*)")

OPEN_TASK_STATUSES = (TaskStatus.todo, TaskStatus.in_progress)


def mention_handle(contact: Contact) -> str:
    """``@first.last`` handle for a contact, lower-cased, spaces removed."""
    return f"{contact.first_name}.{contact.last_name}".replace(" ", "").lower()


def extract_mentions(body: str | None) -> list[str]:
    if not body:
        return []
    handles: list[str] = []
    for match in MENTION_PATTERN.finditer(body):
        handle = match.group(1).lower()
        if handle not in handles:
            handles.append(handle)
    return handles


def resolve_mentions(db: Session, body: str | None) -> list[Contact]:
    handles = extract_mentions(body)
    if not handles:
        return []
    team = (
        db.query(Contact)
        .filter(Contact.contact_type == ContactType.team_member)
        .filter(Contact.status == ContactStatus.active)
        .order_by(Contact.created_at.asc())
        .all()
    )
    by_handle: dict[str, Contact] = {}
    for contact in team:
        by_handle.setdefault(mention_handle(contact), contact)
    return [by_handle[handle] for handle in handles if handle in by_handle]


def notify_mentions(
    db: Session,
    body: str,
    author_contact_id: UUID | None,
    entity_type: str,
    entity_id: UUID,
    context_title: str,
) -> list[UUID]:
    """Stage one mention notification per mentioned team member.

    Returns the ids of every contact mentioned, the author excluded.
    """
    mentioned: list[UUID] = []
    for contact in resolve_mentions(db, body):
        if author_contact_id and contact.id == author_contact_id:
            continue
        mentioned.append(contact.id)
        db.add(
            Notification(
                recipient_contact_id=contact.id,
                kind=NotificationKind.mention,
                title=f"You were mentioned on {context_title}",
                body=body,
                entity_type=entity_type,
                entity_id=entity_id,
            )
        )
    if mentioned:
        logger.info(
            "mention_notifications_staged entity_type=%s entity_id=%s count=%s",
            entity_type,
            entity_id,
            len(mentioned),
        )
    return mentioned


def notify_assignment(db: Session, task: ProjectTask, contact_ids: list[UUID]) -> None:
    for contact_id in contact_ids:
        db.add(
            Notification(
                recipient_contact_id=contact_id,
                kind=NotificationKind.assignment,
                title=f"You were assigned to {task.title}",
                entity_type="task",
                entity_id=task.id,
            )
        )


def generate_due_reminders(db: Session, today: date | None = None, window_days: int | None = None) -> int:
    """Create due-date reminders for assigned open tasks due within the window.

    At most one reminder exists per (task, recipient, due date); a task
    whose date moves gets a fresh reminder for the new date.
    """
    today = today or datetime.now(UTC).date()
    window = settings.due_reminder_window_days if window_days is None else window_days
    horizon = today + timedelta(days=window)
    tasks = (
        db.query(ProjectTask)
        .options(selectinload(ProjectTask.assignees))
        .filter(ProjectTask.is_active.is_(True))
        .filter(ProjectTask.status.in_(OPEN_TASK_STATUSES))
        .filter(ProjectTask.due_date.isnot(None))
        .filter(ProjectTask.due_date >= today)
        .filter(ProjectTask.due_date <= horizon)
        .all()
    )
    created = 0
    for task in tasks:
        for assignee in task.assignees:
            exists = (
                db.query(Notification.id)
                .filter(Notification.kind == NotificationKind.due_reminder)
                .filter(Notification.recipient_contact_id == assignee.contact_id)
                .filter(Notification.entity_id == task.id)
                .filter(Notification.reminder_date == task.due_date)
                .first()
            )
            if exists:
                continue
            db.add(
                Notification(
                    recipient_contact_id=assignee.contact_id,
                    kind=NotificationKind.due_reminder,
                    title=f"{task.title} is due {task.due_date.isoformat()}",
                    entity_type="task",
                    entity_id=task.id,
                    reminder_date=task.due_date,
                )
            )
            created += 1
    db.commit()
    logger.info("due_reminders_generated today=%s window_days=%s created=%s", today, window, created)
    return created


class Notifications(ListResponseMixin):
    @staticmethod
    def get(db: Session, notification_id: str):
        notification = db.get(Notification, coerce_uuid(notification_id))
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        return notification

    @staticmethod
    def list(
        db: Session,
        recipient_contact_id: str,
        unread_only: bool,
        limit: int,
        offset: int,
    ):
        query = db.query(Notification).filter(
            Notification.recipient_contact_id == coerce_uuid(recipient_contact_id)
        )
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def unread_count(db: Session, recipient_contact_id: str) -> int:
        return (
            db.query(Notification)
            .filter(Notification.recipient_contact_id == coerce_uuid(recipient_contact_id))
            .filter(Notification.is_read.is_(False))
            .count()
        )

    @staticmethod
    def mark_read(db: Session, notification_id: str):
        notification = Notifications.get(db, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            db.commit()
            db.refresh(notification)
        return notification

    @staticmethod
    def mark_unread(db: Session, notification_id: str):
        notification = Notifications.get(db, notification_id)
        if notification.is_read:
            notification.is_read = False
            notification.read_at = None
            db.commit()
            db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, recipient_contact_id: str) -> int:
        now = datetime.now(UTC)
        updated = (
            db.query(Notification)
            .filter(Notification.recipient_contact_id == coerce_uuid(recipient_contact_id))
            .filter(Notification.is_read.is_(False))
            .update({Notification.is_read: True, Notification.read_at: now}, synchronize_session=False)
        )
        db.commit()
        return updated


notifications = Notifications()
