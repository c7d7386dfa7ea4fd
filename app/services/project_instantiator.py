"""Template -> project instantiation.

A template is a blueprint of milestones and tasks whose due dates are
relative to an anchor (meeting) date. Instantiating it for a concrete
anchor produces one project with its own milestones and tasks:

* milestones are copied in template order and matched back by title;
* tasks without a dependency are created parents-first, following a
  topological order of the parent graph; tasks whose parent is missing or
  sits on a cycle are dropped and reported together;
* tasks that depend on another task are created last and scheduled a
  fixed number of days after the task they depend on;
* role labels go through the role resolver, and a final pass re-resolves
  whatever role-tags are still pending.
"""

import logging
from collections import defaultdict
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import date, timedelta
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.contacts import Contact
from app.models.projects import (
    DEFAULT_TASK_PRIORITY,
    Milestone,
    MilestoneStatus,
    Project,
    ProjectTask,
    ProjectTaskAssignee,
    ProjectTemplate,
    ProjectTemplateTask,
    TaskStatus,
)
from app.schemas.projects import ProjectCreate, ProjectFromTemplate
from app.services.activity import log_activity
from app.services.common import coerce_uuid, parse_uuid
from app.services.observability import PROJECT_INSTANTIATIONS, TEMPLATE_TASKS_SKIPPED
from app.services.projects import projects
from app.services.role_resolver import RoleResolver
from app.telemetry import get_tracer

logger = logging.getLogger(__name__)

# Children of these template tasks are checklists and never get a due date.
NO_DUE_DATE_PARENT_TITLES: frozenset[str] = frozenset(
    {
        "Generate Database Reports and Documents for Preliminary Packet",
        "Nominations and Deliverables Checkpoints",
    }
)
SEALED_PACKET_TASK_TITLE = "Packet Sealed and Made Available to TA"
SEALED_PACKET_LAG_DAYS = 3
DEFAULT_DEPENDENCY_LAG_DAYS = 1

# Milestone traced at DEBUG level while template authors tune its offsets.
TRACED_MILESTONE_TITLE = "Preliminary Packet"


@dataclass(frozen=True)
class SkippedTemplateTask:
    template_task_id: UUID
    title: str
    reason: str


@dataclass
class InstantiationResult:
    project: Project
    template: ProjectTemplate | None = None
    milestones: list[Milestone] = field(default_factory=list)
    tasks: list[ProjectTask] = field(default_factory=list)
    skipped: list[SkippedTemplateTask] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.template is None:
            return "Created project"
        return f"Created project with {len(self.tasks)} tasks from {self.template.name} template"


def dependency_lag_days(title: str) -> int:
    if title.strip() == SEALED_PACKET_TASK_TITLE:
        return SEALED_PACKET_LAG_DAYS
    return DEFAULT_DEPENDENCY_LAG_DAYS


def order_by_parent(
    tasks: list[ProjectTemplateTask],
    dependent_ids: Collection[UUID] = frozenset(),
) -> tuple[list[ProjectTemplateTask], list[SkippedTemplateTask]]:
    """Order tasks so every parent precedes its children.

    Returns the creatable tasks level by level (roots first, in input
    order) and the tasks that can never be placed: those whose parent is
    not in ``tasks`` and every task below them or on a parent cycle.
    Children of a dependency-scheduled task (listed in ``dependent_ids``)
    are reported separately as ``parent_dependent``.
    """
    by_id = {task.id: task for task in tasks}
    children: dict[UUID, list[ProjectTemplateTask]] = defaultdict(list)
    roots: list[ProjectTemplateTask] = []
    for task in tasks:
        if task.parent_task_id is None:
            roots.append(task)
        elif task.parent_task_id in by_id:
            children[task.parent_task_id].append(task)

    ordered: list[ProjectTemplateTask] = []
    frontier = roots
    while frontier:
        ordered.extend(frontier)
        frontier = [child for parent in frontier for child in children.get(parent.id, [])]

    placed = {task.id for task in ordered}
    unresolved = [
        SkippedTemplateTask(
            template_task_id=task.id,
            title=task.title,
            reason=_unplaced_reason(task, by_id, dependent_ids),
        )
        for task in tasks
        if task.id not in placed
    ]
    return ordered, unresolved


def _unplaced_reason(task: ProjectTemplateTask, by_id: dict, dependent_ids: Collection[UUID]) -> str:
    if task.parent_task_id in by_id:
        return "parent_unresolved"
    if task.parent_task_id in dependent_ids:
        return "parent_dependent"
    return "parent_missing"


class ProjectInstantiator:
    def __init__(self, role_resolver: RoleResolver):
        self.role_resolver = role_resolver

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def match_template(self, db: Session, meeting_type) -> ProjectTemplate | None:
        if not meeting_type:
            return None
        return (
            db.query(ProjectTemplate)
            .filter(ProjectTemplate.meeting_type == meeting_type)
            .filter(ProjectTemplate.is_active.is_(True))
            .order_by(ProjectTemplate.created_at.asc())
            .first()
        )

    def create_project(self, db: Session, payload: ProjectCreate) -> InstantiationResult:
        """Create a project, instantiating the matching template when there is one.

        A template is used only when the project carries both a meeting type
        and an anchor due date; otherwise this is a plain project create.
        """
        template = None
        if payload.project_type and payload.due_date:
            template = self.match_template(db, payload.project_type)
        if template is None:
            logger.info("project_template_not_matched project_type=%s", payload.project_type)
            return InstantiationResult(project=projects.create(db, payload))
        return self.instantiate(db, template, payload)

    def create_from_template(self, db: Session, payload: ProjectFromTemplate) -> InstantiationResult:
        template = db.get(ProjectTemplate, coerce_uuid(payload.template_id))
        if not template or not template.is_active:
            raise HTTPException(status_code=404, detail="Project template not found")
        project_payload = ProjectCreate(
            name=payload.name,
            description=payload.description,
            client_id=payload.client_id,
            project_type=template.meeting_type,
            status=payload.status,
            due_date=payload.due_date,
        )
        return self.instantiate(db, template, project_payload)

    # -------------------------------------------------------------------------
    # Instantiation
    # -------------------------------------------------------------------------

    def instantiate(self, db: Session, template: ProjectTemplate, payload: ProjectCreate) -> InstantiationResult:
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span("project.instantiate") as span:
            span.set_attribute("template.id", str(template.id))
            try:
                result = self._instantiate(db, template, payload)
            except Exception:
                PROJECT_INSTANTIATIONS.labels(status="failed").inc()
                raise
            span.set_attribute("project.id", str(result.project.id))
            span.set_attribute("tasks.created", len(result.tasks))
            PROJECT_INSTANTIATIONS.labels(status="created").inc()
            return result

    def _instantiate(self, db: Session, template: ProjectTemplate, payload: ProjectCreate) -> InstantiationResult:
        anchor: date | None = payload.due_date
        project = projects.create(db, payload, template_id=template.id)
        result = InstantiationResult(project=project, template=template)

        template_milestones = (
            db.query(Milestone)
            .filter(Milestone.template_id == template.id)
            .order_by(Milestone.sort_order.asc(), Milestone.created_at.asc())
            .all()
        )
        template_tasks = (
            db.query(ProjectTemplateTask)
            .filter(ProjectTemplateTask.template_id == template.id)
            .filter(ProjectTemplateTask.is_active.is_(True))
            .all()
        )

        milestone_by_title = self._copy_milestones(db, project, template_milestones, result)
        milestone_title_by_id = {m.id: m.title for m in template_milestones}
        milestone_rank = {m.id: index for index, m in enumerate(template_milestones)}
        template_by_id = {task.id: task for task in template_tasks}

        template_tasks.sort(
            key=lambda t: (
                milestone_rank.get(t.milestone_id, len(milestone_rank)),
                t.sort_order or 0,
                t.created_at,
            )
        )

        independent: list[ProjectTemplateTask] = []
        dependent: list[ProjectTemplateTask] = []
        for template_task in template_tasks:
            if not (template_task.title or "").strip():
                logger.warning("template_task_empty_title template_task_id=%s", template_task.id)
                self._skip(result, template_task, "empty_title")
                continue
            if template_task.depends_on_template_task_id:
                dependent.append(template_task)
            else:
                independent.append(template_task)

        ordered, unresolved = order_by_parent(independent, {task.id for task in dependent})
        if unresolved:
            logger.warning(
                "template_tasks_unresolved_parents template_id=%s count=%s titles=%s",
                template.id,
                len(unresolved),
                [item.title for item in unresolved],
            )
            for item in unresolved:
                TEMPLATE_TASKS_SKIPPED.labels(reason=item.reason).inc()
            result.skipped.extend(unresolved)

        created: dict[UUID, ProjectTask] = {}

        for template_task in ordered:
            parent_template = template_by_id.get(template_task.parent_task_id)
            due_date, offset = self._offset_due_date(template_task, parent_template, anchor)
            task = self._create_task(
                db,
                project,
                template_task,
                parent=created.get(template_task.parent_task_id),
                milestone=milestone_by_title.get(milestone_title_by_id.get(template_task.milestone_id)),
                due_date=due_date,
                anchor_offset_days=offset,
                days_from_anchor=template_task.days_from_anchor,
            )
            created[template_task.id] = task
            result.tasks.append(task)
            self._trace_milestone(template_task, milestone_title_by_id, due_date)

        for template_task in dependent:
            dependency = created.get(template_task.depends_on_template_task_id)
            lag_days = None
            if template_task.due_date:
                due_date = template_task.due_date
            elif dependency is not None and dependency.due_date is not None:
                lag_days = dependency_lag_days(template_task.title)
                due_date = dependency.due_date + timedelta(days=lag_days)
            else:
                due_date = None
            if dependency is None:
                logger.warning(
                    "template_task_dependency_missing template_task_id=%s depends_on=%s",
                    template_task.id,
                    template_task.depends_on_template_task_id,
                )
            parent = created.get(template_task.parent_task_id)
            if template_task.parent_task_id and parent is None:
                logger.warning(
                    "template_task_parent_missing template_task_id=%s parent_task_id=%s",
                    template_task.id,
                    template_task.parent_task_id,
                )
            task = self._create_task(
                db,
                project,
                template_task,
                parent=parent,
                milestone=milestone_by_title.get(milestone_title_by_id.get(template_task.milestone_id)),
                due_date=due_date,
                anchor_offset_days=None,
                days_from_anchor=None,
                depends_on=dependency,
                lag_days=lag_days,
            )
            created[template_task.id] = task
            result.tasks.append(task)
            self._trace_milestone(template_task, milestone_title_by_id, due_date)

        log_activity(
            db,
            "instantiated_template",
            "project",
            project.id,
            description=f"Created {len(result.tasks)} tasks from {template.name}",
            metadata={
                "template_id": str(template.id),
                "milestones": len(result.milestones),
                "tasks": len(result.tasks),
                "skipped": len(result.skipped),
            },
        )
        db.commit()

        self.role_resolver.resolve_project(db, project.id)

        for task in result.tasks:
            db.refresh(task)
        logger.info(
            "project_instantiated project_id=%s template_id=%s milestones=%s tasks=%s skipped=%s",
            project.id,
            template.id,
            len(result.milestones),
            len(result.tasks),
            len(result.skipped),
        )
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _skip(result: InstantiationResult, template_task: ProjectTemplateTask, reason: str) -> None:
        TEMPLATE_TASKS_SKIPPED.labels(reason=reason).inc()
        result.skipped.append(
            SkippedTemplateTask(template_task_id=template_task.id, title=template_task.title or "", reason=reason)
        )

    @staticmethod
    def _copy_milestones(
        db: Session,
        project: Project,
        template_milestones: list[Milestone],
        result: InstantiationResult,
    ) -> dict[str, Milestone]:
        by_title: dict[str, Milestone] = {}
        for template_milestone in template_milestones:
            milestone = Milestone(
                project_id=project.id,
                title=template_milestone.title,
                description=template_milestone.description,
                status=MilestoneStatus.pending,
                sort_order=template_milestone.sort_order or 0,
            )
            db.add(milestone)
            result.milestones.append(milestone)
            by_title.setdefault(milestone.title, milestone)
        db.flush()
        return by_title

    @staticmethod
    def _offset_due_date(
        template_task: ProjectTemplateTask,
        parent_template: ProjectTemplateTask | None,
        anchor: date | None,
    ) -> tuple[date | None, int | None]:
        """Return (due date, offset the date was derived from)."""
        if template_task.due_date:
            return template_task.due_date, None
        if parent_template is not None and (parent_template.title or "").strip() in NO_DUE_DATE_PARENT_TITLES:
            return None, None
        if template_task.days_from_anchor is None or anchor is None:
            return None, None
        return anchor + timedelta(days=template_task.days_from_anchor), template_task.days_from_anchor

    def _assignment(self, db: Session, template_task: ProjectTemplateTask) -> tuple[list[UUID], list[str] | None]:
        if template_task.assigned_roles:
            resolution = self.role_resolver.resolve(db, template_task.assigned_roles)
            return resolution.contact_ids or [], resolution.unassigned_roles or None
        if template_task.assigned_contact_ids:
            requested = [cid for cid in (parse_uuid(raw) for raw in template_task.assigned_contact_ids) if cid]
            if not requested:
                return [], None
            existing = {row[0] for row in db.query(Contact.id).filter(Contact.id.in_(requested)).all()}
            missing = [str(cid) for cid in requested if cid not in existing]
            if missing:
                logger.warning(
                    "template_task_unknown_contacts template_task_id=%s contact_ids=%s",
                    template_task.id,
                    missing,
                )
            return list(dict.fromkeys(cid for cid in requested if cid in existing)), None
        return [], None

    def _create_task(
        self,
        db: Session,
        project: Project,
        template_task: ProjectTemplateTask,
        *,
        parent: ProjectTask | None,
        milestone: Milestone | None,
        due_date: date | None,
        anchor_offset_days: int | None,
        days_from_anchor: int | None,
        depends_on: ProjectTask | None = None,
        lag_days: int | None = None,
    ) -> ProjectTask:
        contact_ids, pending_roles = self._assignment(db, template_task)
        task = ProjectTask(
            project_id=project.id,
            template_task_id=template_task.id,
            milestone_id=milestone.id if milestone else None,
            parent_task_id=parent.id if parent else None,
            depends_on_task_id=depends_on.id if depends_on else None,
            dependency_lag_days=lag_days,
            title=template_task.title.strip(),
            description=template_task.description,
            status=TaskStatus.todo,
            priority=template_task.priority or DEFAULT_TASK_PRIORITY,
            due_date=due_date,
            assigned_roles=pending_roles,
            sort_order=template_task.sort_order or 0,
            level=template_task.level or 0,
            days_from_anchor=days_from_anchor,
            anchor_offset_days=anchor_offset_days,
        )
        for contact_id in contact_ids:
            task.assignees.append(ProjectTaskAssignee(contact_id=contact_id))
        db.add(task)
        db.flush()
        return task

    @staticmethod
    def _trace_milestone(
        template_task: ProjectTemplateTask,
        milestone_title_by_id: dict[UUID, str],
        due_date: date | None,
    ) -> None:
        if milestone_title_by_id.get(template_task.milestone_id) != TRACED_MILESTONE_TITLE:
            return
        logger.debug(
            "milestone_task_scheduled milestone=%s title=%s days_from_anchor=%s due_date=%s",
            TRACED_MILESTONE_TITLE,
            template_task.title,
            template_task.days_from_anchor,
            due_date,
        )
