import logging
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.contacts import Contact
from app.models.projects import Milestone, MeetingType, ProjectTemplate, ProjectTemplateTask
from app.schemas.projects import (
    ProjectTemplateCopy,
    ProjectTemplateCreate,
    ProjectTemplateTaskCreate,
    ProjectTemplateTaskUpdate,
    ProjectTemplateUpdate,
)
from app.services.activity import log_activity
from app.services.common import apply_ordering, apply_pagination, coerce_uuid, validate_enum
from app.services.response import ListResponseMixin
from app.services.role_resolver import normalize_roles

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


def ensure_template(db: Session, template_id) -> ProjectTemplate:
    template = db.get(ProjectTemplate, coerce_uuid(template_id))
    if not template:
        raise HTTPException(status_code=404, detail="Project template not found")
    return template


def _ensure_template_task(db: Session, task_id, template_id: UUID, label: str) -> ProjectTemplateTask:
    task = db.get(ProjectTemplateTask, coerce_uuid(task_id))
    if not task:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    if task.template_id != template_id:
        raise HTTPException(status_code=400, detail=f"{label} must belong to the same template")
    return task


def _stored_contact_ids(db: Session, contact_ids: list | None) -> list[str] | None:
    """Contact ids as stored in JSON; every id must name an existing contact."""
    if not contact_ids:
        return None
    normalized: list[UUID] = []
    for raw in contact_ids:
        contact_id = coerce_uuid(raw)
        if contact_id not in normalized:
            normalized.append(contact_id)
    found = {row[0] for row in db.query(Contact.id).filter(Contact.id.in_(normalized)).all()}
    if len(found) != len(normalized):
        raise HTTPException(status_code=404, detail="Contact not found")
    return [str(contact_id) for contact_id in normalized]


class ProjectTemplates(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: ProjectTemplateCreate):
        template = ProjectTemplate(**payload.model_dump())
        db.add(template)
        db.flush()
        log_activity(db, "created_template", "template", template.id, description=f"Created template {template.name}")
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def get(db: Session, template_id: str):
        return ensure_template(db, template_id)

    @staticmethod
    def list(
        db: Session,
        meeting_type: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(ProjectTemplate)
        if meeting_type:
            query = query.filter(
                ProjectTemplate.meeting_type == validate_enum(meeting_type, MeetingType, "meeting_type")
            )
        if is_active is None:
            query = query.filter(ProjectTemplate.is_active.is_(True))
        else:
            query = query.filter(ProjectTemplate.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": ProjectTemplate.created_at, "name": ProjectTemplate.name},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, template_id: str, payload: ProjectTemplateUpdate):
        template = ensure_template(db, template_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(template, key, value)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def delete(db: Session, template_id: str):
        template = ensure_template(db, template_id)
        template.is_active = False
        db.commit()

    @staticmethod
    def list_milestones(db: Session, template_id: str):
        template = ensure_template(db, template_id)
        return (
            db.query(Milestone)
            .filter(Milestone.template_id == template.id)
            .order_by(Milestone.sort_order.asc(), Milestone.created_at.asc())
            .all()
        )

    @staticmethod
    def list_tasks(db: Session, template_id: str):
        template = ensure_template(db, template_id)
        return (
            db.query(ProjectTemplateTask)
            .filter(ProjectTemplateTask.template_id == template.id)
            .filter(ProjectTemplateTask.is_active.is_(True))
            .order_by(ProjectTemplateTask.sort_order.asc(), ProjectTemplateTask.created_at.asc())
            .all()
        )

    @staticmethod
    def task_count(db: Session, template_id: str) -> int:
        template = ensure_template(db, template_id)
        return (
            db.query(func.count(ProjectTemplateTask.id))
            .filter(ProjectTemplateTask.template_id == template.id)
            .filter(ProjectTemplateTask.is_active.is_(True))
            .scalar()
        ) or 0

    @staticmethod
    def copy(db: Session, template_id: str, payload: ProjectTemplateCopy | None = None):
        """Duplicate a template with its milestones and active tasks.

        Parent and dependency links are remapped onto the copies; links to
        tasks that were not copied are dropped.
        """
        source = ensure_template(db, template_id)
        name = payload.name if payload and payload.name else f"{source.name}{COPY_SUFFIX}"
        template = ProjectTemplate(
            name=name,
            description=source.description,
            meeting_type=source.meeting_type,
            is_active=True,
        )
        db.add(template)
        db.flush()

        milestone_map: dict[UUID, UUID] = {}
        for milestone in ProjectTemplates.list_milestones(db, str(source.id)):
            copied = Milestone(
                template_id=template.id,
                title=milestone.title,
                description=milestone.description,
                status=milestone.status,
                due_date=milestone.due_date,
                sort_order=milestone.sort_order,
            )
            db.add(copied)
            db.flush()
            milestone_map[milestone.id] = copied.id

        source_tasks = ProjectTemplates.list_tasks(db, str(source.id))
        task_map: dict[UUID, ProjectTemplateTask] = {}
        for task in source_tasks:
            copied_task = ProjectTemplateTask(
                template_id=template.id,
                milestone_id=milestone_map.get(task.milestone_id),
                title=task.title,
                description=task.description,
                priority=task.priority,
                days_from_anchor=task.days_from_anchor,
                due_date=task.due_date,
                assigned_roles=list(task.assigned_roles) if task.assigned_roles else None,
                assigned_contact_ids=list(task.assigned_contact_ids) if task.assigned_contact_ids else None,
                sort_order=task.sort_order,
                level=task.level,
                is_active=task.is_active,
            )
            db.add(copied_task)
            task_map[task.id] = copied_task
        db.flush()

        for task in source_tasks:
            copied_task = task_map[task.id]
            parent = task_map.get(task.parent_task_id)
            copied_task.parent_task_id = parent.id if parent else None

        for task in source_tasks:
            copied_task = task_map[task.id]
            dependency = task_map.get(task.depends_on_template_task_id)
            copied_task.depends_on_template_task_id = dependency.id if dependency else None

        log_activity(
            db,
            "copied_template",
            "template",
            template.id,
            description=f"Copied template {source.name}",
            metadata={"source_template_id": str(source.id), "tasks": len(task_map)},
        )
        db.commit()
        db.refresh(template)
        logger.info(
            "project_template_copied source_id=%s template_id=%s tasks=%s",
            source.id,
            template.id,
            len(task_map),
        )
        return template


class ProjectTemplateTasks(ListResponseMixin):
    @staticmethod
    def _validate_links(db: Session, template_id: UUID, data: dict, task_id: UUID | None = None) -> None:
        if data.get("parent_task_id"):
            parent = _ensure_template_task(db, data["parent_task_id"], template_id, "Parent template task")
            if task_id and parent.id == task_id:
                raise HTTPException(status_code=400, detail="Template task cannot be its own parent")
        if data.get("depends_on_template_task_id"):
            dependency = _ensure_template_task(
                db, data["depends_on_template_task_id"], template_id, "Dependency template task"
            )
            if task_id and dependency.id == task_id:
                raise HTTPException(status_code=400, detail="Template task cannot depend on itself")
        if data.get("milestone_id"):
            milestone = db.get(Milestone, coerce_uuid(data["milestone_id"]))
            if not milestone:
                raise HTTPException(status_code=404, detail="Milestone not found")
            if milestone.template_id != template_id:
                raise HTTPException(status_code=400, detail="Milestone must belong to the same template")

    @staticmethod
    def create(db: Session, payload: ProjectTemplateTaskCreate):
        template = ensure_template(db, payload.template_id)
        data = payload.model_dump()
        ProjectTemplateTasks._validate_links(db, template.id, data)
        data["assigned_roles"] = normalize_roles(data.get("assigned_roles")) or None
        data["assigned_contact_ids"] = _stored_contact_ids(db, data.get("assigned_contact_ids"))
        task = ProjectTemplateTask(**data)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def get(db: Session, task_id: str):
        task = db.get(ProjectTemplateTask, coerce_uuid(task_id))
        if not task:
            raise HTTPException(status_code=404, detail="Template task not found")
        return task

    @staticmethod
    def list(
        db: Session,
        template_id: str | None,
        milestone_id: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(ProjectTemplateTask)
        if template_id:
            query = query.filter(ProjectTemplateTask.template_id == coerce_uuid(template_id))
        if milestone_id:
            query = query.filter(ProjectTemplateTask.milestone_id == coerce_uuid(milestone_id))
        if is_active is None:
            query = query.filter(ProjectTemplateTask.is_active.is_(True))
        else:
            query = query.filter(ProjectTemplateTask.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": ProjectTemplateTask.created_at,
                "sort_order": ProjectTemplateTask.sort_order,
                "days_from_anchor": ProjectTemplateTask.days_from_anchor,
                "title": ProjectTemplateTask.title,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, task_id: str, payload: ProjectTemplateTaskUpdate):
        task = ProjectTemplateTasks.get(db, task_id)
        data = payload.model_dump(exclude_unset=True)
        ProjectTemplateTasks._validate_links(db, task.template_id, data, task_id=task.id)
        if "assigned_roles" in data:
            data["assigned_roles"] = normalize_roles(data["assigned_roles"]) or None
        if "assigned_contact_ids" in data:
            data["assigned_contact_ids"] = _stored_contact_ids(db, data["assigned_contact_ids"])
        for key, value in data.items():
            setattr(task, key, value)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete(db: Session, task_id: str):
        task = ProjectTemplateTasks.get(db, task_id)
        task.is_active = False
        db.commit()


project_templates = ProjectTemplates()
project_template_tasks = ProjectTemplateTasks()
