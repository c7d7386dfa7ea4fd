import logging
from datetime import UTC, date, datetime, timedelta
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.models.contacts import Contact
from app.models.projects import (
    Milestone,
    MeetingType,
    Project,
    ProjectComment,
    ProjectStatus,
    ProjectTask,
    ProjectTaskAssignee,
    ProjectTaskComment,
    ProjectTemplateTask,
    TaskStatus,
)
from app.schemas.projects import (
    MilestoneCreate,
    MilestoneUpdate,
    ProjectCommentCreate,
    ProjectCreate,
    ProjectTaskCommentCreate,
    ProjectTaskCreate,
    ProjectTaskUpdate,
    ProjectUpdate,
)
from app.services import notifications as notifications_service
from app.services.activity import log_activity
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    ensure_exists,
    parse_uuid,
    validate_enum,
)
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

UPCOMING_TASK_DAYS = 7
DUE_SOON_PROJECT_STATUSES = (ProjectStatus.planning, ProjectStatus.active)
CLOSED_TASK_STATUSES = (TaskStatus.completed, TaskStatus.cancelled)


def _ensure_contact(db: Session, contact_id) -> Contact:
    return ensure_exists(db, Contact, contact_id, "Contact not found")


def _ensure_project(db: Session, project_id) -> Project:
    project = db.get(Project, coerce_uuid(project_id))
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _ensure_task_in_project(db: Session, task_id, project_id: UUID, label: str) -> ProjectTask:
    task = db.get(ProjectTask, coerce_uuid(task_id))
    if not task:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    if task.project_id != project_id:
        raise HTTPException(status_code=400, detail=f"{label} must belong to the same project")
    return task


def _ensure_milestone_in_project(db: Session, milestone_id, project_id: UUID) -> Milestone:
    milestone = db.get(Milestone, coerce_uuid(milestone_id))
    if not milestone:
        raise HTTPException(status_code=404, detail="Milestone not found")
    if milestone.project_id != project_id:
        raise HTTPException(status_code=400, detail="Milestone must belong to the same project")
    return milestone


def _creates_parent_cycle(db: Session, task_id: UUID, parent_id: UUID) -> bool:
    seen: set[UUID] = set()
    current = parent_id
    while current is not None and current not in seen:
        if current == task_id:
            return True
        seen.add(current)
        parent = db.get(ProjectTask, current)
        current = parent.parent_task_id if parent else None
    return False


def _normalize_ids(raw_ids: list) -> list[UUID]:
    normalized: list[UUID] = []
    for raw in raw_ids:
        coerced = parse_uuid(raw)
        if coerced and coerced not in normalized:
            normalized.append(coerced)
    return normalized


def _sync_task_assignees(db: Session, task: ProjectTask, contact_ids: list | None) -> list[UUID]:
    """Make the task's assignees match ``contact_ids``; return newly added ids."""
    if contact_ids is None:
        return []
    normalized = _normalize_ids(contact_ids)
    for contact_id in normalized:
        _ensure_contact(db, contact_id)

    current_ids = {assignee.contact_id for assignee in task.assignees}
    target_ids = set(normalized)
    added = [contact_id for contact_id in normalized if contact_id not in current_ids]
    for contact_id in added:
        task.assignees.append(ProjectTaskAssignee(task_id=task.id, contact_id=contact_id))
    for assignee in list(task.assignees):
        if assignee.contact_id not in target_ids:
            task.assignees.remove(assignee)
    return added


class Projects(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: ProjectCreate, template_id: UUID | None = None):
        if payload.client_id:
            _ensure_contact(db, payload.client_id)
        data = payload.model_dump()
        project = Project(**data, template_id=template_id)
        db.add(project)
        db.flush()
        log_activity(db, "created_project", "project", project.id, description=f"Created project {project.name}")
        db.commit()
        db.refresh(project)
        logger.info("project_created project_id=%s template_id=%s", project.id, template_id)
        return project

    @staticmethod
    def get(db: Session, project_id: str):
        return _ensure_project(db, project_id)

    @staticmethod
    def list(
        db: Session,
        client_id: str | None,
        status: str | None,
        project_type: str | None,
        search: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(Project)
        if client_id:
            query = query.filter(Project.client_id == coerce_uuid(client_id))
        if status:
            query = query.filter(Project.status == validate_enum(status, ProjectStatus, "status"))
        if project_type:
            query = query.filter(Project.project_type == validate_enum(project_type, MeetingType, "project_type"))
        if search and search.strip():
            like_term = f"%{search.strip()}%"
            query = query.filter(or_(Project.name.ilike(like_term), Project.description.ilike(like_term)))
        if is_active is None:
            query = query.filter(Project.is_active.is_(True))
        else:
            query = query.filter(Project.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Project.created_at,
                "name": Project.name,
                "due_date": Project.due_date,
                "status": Project.status,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def list_due_between(db: Session, start: date, end: date):
        return (
            db.query(Project)
            .filter(Project.is_active.is_(True))
            .filter(Project.status.in_(DUE_SOON_PROJECT_STATUSES))
            .filter(Project.due_date.isnot(None))
            .filter(Project.due_date >= start)
            .filter(Project.due_date <= end)
            .order_by(Project.due_date.asc(), Project.name.asc())
            .all()
        )

    @staticmethod
    def update(db: Session, project_id: str, payload: ProjectUpdate):
        project = _ensure_project(db, project_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("client_id"):
            _ensure_contact(db, data["client_id"])
        for key, value in data.items():
            setattr(project, key, value)
        if project.start_date and project.end_date and project.start_date > project.end_date:
            raise HTTPException(status_code=400, detail="start_date must not be after end_date")
        db.commit()
        db.refresh(project)
        return project

    @staticmethod
    def delete(db: Session, project_id: str):
        """Soft delete a project."""
        project = _ensure_project(db, project_id)
        project.is_active = False
        db.commit()


class ProjectTasks(ListResponseMixin):
    @staticmethod
    def _validate_links(db: Session, project_id: UUID, data: dict, task_id: UUID | None = None) -> None:
        if data.get("parent_task_id"):
            parent = _ensure_task_in_project(db, data["parent_task_id"], project_id, "Parent task")
            if task_id and _creates_parent_cycle(db, task_id, parent.id):
                raise HTTPException(status_code=400, detail="Parent task would create a cycle")
        if data.get("depends_on_task_id"):
            dependency = _ensure_task_in_project(db, data["depends_on_task_id"], project_id, "Dependency task")
            if task_id and dependency.id == task_id:
                raise HTTPException(status_code=400, detail="Task cannot depend on itself")
        if data.get("milestone_id"):
            _ensure_milestone_in_project(db, data["milestone_id"], project_id)

    @staticmethod
    def create(db: Session, payload: ProjectTaskCreate):
        project = _ensure_project(db, payload.project_id)
        data = payload.model_dump(exclude={"assigned_contact_ids"})
        ProjectTasks._validate_links(db, project.id, data)
        task = ProjectTask(**data)
        db.add(task)
        db.flush()
        added = _sync_task_assignees(db, task, payload.assigned_contact_ids)
        notifications_service.notify_assignment(db, task, added)
        log_activity(db, "created_task", "task", task.id, description=f"Created task {task.title}")
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def get(db: Session, task_id: str):
        task = db.get(ProjectTask, coerce_uuid(task_id))
        if not task:
            raise HTTPException(status_code=404, detail="Project task not found")
        return task

    @staticmethod
    def list(
        db: Session,
        project_id: str | None,
        milestone_id: str | None,
        status: str | None,
        assigned_contact_id: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(ProjectTask).options(selectinload(ProjectTask.assignees))
        if project_id:
            query = query.filter(ProjectTask.project_id == coerce_uuid(project_id))
        if milestone_id:
            query = query.filter(ProjectTask.milestone_id == coerce_uuid(milestone_id))
        if status:
            query = query.filter(ProjectTask.status == validate_enum(status, TaskStatus, "status"))
        if assigned_contact_id:
            query = query.join(ProjectTaskAssignee).filter(
                ProjectTaskAssignee.contact_id == coerce_uuid(assigned_contact_id)
            )
        if is_active is None:
            query = query.filter(ProjectTask.is_active.is_(True))
        else:
            query = query.filter(ProjectTask.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": ProjectTask.created_at,
                "due_date": ProjectTask.due_date,
                "priority": ProjectTask.priority,
                "sort_order": ProjectTask.sort_order,
                "title": ProjectTask.title,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def list_for_project(db: Session, project_id: str):
        project = _ensure_project(db, project_id)
        return (
            db.query(ProjectTask)
            .options(selectinload(ProjectTask.assignees))
            .filter(ProjectTask.project_id == project.id)
            .filter(ProjectTask.is_active.is_(True))
            .order_by(ProjectTask.sort_order.asc(), ProjectTask.created_at.asc())
            .all()
        )

    @staticmethod
    def upcoming(db: Session, today: date | None = None, days: int = UPCOMING_TASK_DAYS):
        today = today or datetime.now(UTC).date()
        return (
            db.query(ProjectTask)
            .filter(ProjectTask.is_active.is_(True))
            .filter(ProjectTask.status == TaskStatus.todo)
            .filter(ProjectTask.due_date.isnot(None))
            .filter(ProjectTask.due_date >= today)
            .filter(ProjectTask.due_date <= today + timedelta(days=days))
            .order_by(ProjectTask.due_date.asc(), ProjectTask.priority.asc())
            .all()
        )

    @staticmethod
    def overdue(db: Session, today: date | None = None):
        today = today or datetime.now(UTC).date()
        return (
            db.query(ProjectTask)
            .filter(ProjectTask.is_active.is_(True))
            .filter(ProjectTask.status.notin_(CLOSED_TASK_STATUSES))
            .filter(ProjectTask.due_date.isnot(None))
            .filter(ProjectTask.due_date < today)
            .order_by(ProjectTask.due_date.asc())
            .all()
        )

    @staticmethod
    def update(db: Session, task_id: str, payload: ProjectTaskUpdate):
        task = ProjectTasks.get(db, task_id)
        data = payload.model_dump(exclude_unset=True)
        contact_ids = data.pop("assigned_contact_ids", None)
        ProjectTasks._validate_links(db, task.project_id, data, task_id=task.id)
        previous_status = task.status
        for key, value in data.items():
            setattr(task, key, value)
        if task.status == TaskStatus.completed and previous_status != TaskStatus.completed:
            task.completed_at = datetime.now(UTC)
        elif task.status != TaskStatus.completed:
            task.completed_at = None
        added = _sync_task_assignees(db, task, contact_ids)
        notifications_service.notify_assignment(db, task, added)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete(db: Session, task_id: str):
        task = ProjectTasks.get(db, task_id)
        task.is_active = False
        db.commit()


class Milestones(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: MilestoneCreate):
        if payload.project_id:
            _ensure_project(db, payload.project_id)
        else:
            from app.services.project_templates import ensure_template

            ensure_template(db, payload.template_id)
        milestone = Milestone(**payload.model_dump())
        db.add(milestone)
        db.flush()
        log_activity(db, "created_milestone", "milestone", milestone.id, description=f"Created milestone {milestone.title}")
        db.commit()
        db.refresh(milestone)
        return milestone

    @staticmethod
    def get(db: Session, milestone_id: str):
        milestone = db.get(Milestone, coerce_uuid(milestone_id))
        if not milestone:
            raise HTTPException(status_code=404, detail="Milestone not found")
        return milestone

    @staticmethod
    def list_for_project(db: Session, project_id: str):
        project = _ensure_project(db, project_id)
        return (
            db.query(Milestone)
            .filter(Milestone.project_id == project.id)
            .order_by(Milestone.sort_order.asc(), Milestone.created_at.asc())
            .all()
        )

    @staticmethod
    def update(db: Session, milestone_id: str, payload: MilestoneUpdate):
        milestone = Milestones.get(db, milestone_id)
        data = payload.model_dump(exclude_unset=True)
        for key, value in data.items():
            setattr(milestone, key, value)
        db.commit()
        db.refresh(milestone)
        return milestone

    @staticmethod
    def delete(db: Session, milestone_id: str):
        milestone = Milestones.get(db, milestone_id)
        db.query(ProjectTask).filter(ProjectTask.milestone_id == milestone.id).update(
            {ProjectTask.milestone_id: None}, synchronize_session=False
        )
        db.query(ProjectTemplateTask).filter(ProjectTemplateTask.milestone_id == milestone.id).update(
            {ProjectTemplateTask.milestone_id: None}, synchronize_session=False
        )
        db.delete(milestone)
        db.commit()

    @staticmethod
    def reorder(db: Session, milestone_ids: list):
        """Assign sort_order 1..n in the given order.

        All milestones must share one owner (a single template or project).
        """
        ids = _normalize_ids(milestone_ids)
        milestones = db.query(Milestone).filter(Milestone.id.in_(ids)).all() if ids else []
        if len(milestones) != len(ids):
            raise HTTPException(status_code=404, detail="Milestone not found")
        owners = {(m.template_id, m.project_id) for m in milestones}
        if len(owners) > 1:
            raise HTTPException(status_code=400, detail="Milestones must share the same owner")
        by_id = {m.id: m for m in milestones}
        for position, milestone_id in enumerate(ids, start=1):
            by_id[milestone_id].sort_order = position
        db.commit()
        return [by_id[milestone_id] for milestone_id in ids]


class ProjectTaskComments(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: ProjectTaskCommentCreate):
        task = ProjectTasks.get(db, str(payload.task_id))
        if payload.author_contact_id:
            _ensure_contact(db, payload.author_contact_id)
        comment = ProjectTaskComment(**payload.model_dump())
        db.add(comment)
        db.flush()
        mentioned = notifications_service.notify_mentions(
            db, comment.body, comment.author_contact_id, "task", task.id, task.title
        )
        comment.mentioned_contact_ids = [str(contact_id) for contact_id in mentioned] or None
        db.commit()
        db.refresh(comment)
        return comment

    @staticmethod
    def list(db: Session, task_id: str, limit: int, offset: int):
        query = (
            db.query(ProjectTaskComment)
            .filter(ProjectTaskComment.task_id == coerce_uuid(task_id))
            .order_by(ProjectTaskComment.created_at.asc())
        )
        return apply_pagination(query, limit, offset).all()


class ProjectComments(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: ProjectCommentCreate):
        project = _ensure_project(db, payload.project_id)
        if payload.author_contact_id:
            _ensure_contact(db, payload.author_contact_id)
        comment = ProjectComment(**payload.model_dump())
        db.add(comment)
        db.flush()
        mentioned = notifications_service.notify_mentions(
            db, comment.body, comment.author_contact_id, "project", project.id, project.name
        )
        comment.mentioned_contact_ids = [str(contact_id) for contact_id in mentioned] or None
        db.commit()
        db.refresh(comment)
        return comment

    @staticmethod
    def list(db: Session, project_id: str, limit: int, offset: int):
        query = (
            db.query(ProjectComment)
            .filter(ProjectComment.project_id == coerce_uuid(project_id))
            .order_by(ProjectComment.created_at.asc())
        )
        return apply_pagination(query, limit, offset).all()


projects = Projects()
project_tasks = ProjectTasks()
milestones = Milestones()
project_task_comments = ProjectTaskComments()
project_comments = ProjectComments()
