"""Recompute task due dates after a project's anchor date moves.

New dates come only from each task's stored ``anchor_offset_days`` (and,
for dependency-scheduled tasks, from the recomputed date of the task they
depend on), never from the task's current due date, so moving the anchor
repeatedly cannot drift.

Writes are issued concurrently, one short-lived session per task, and
joined before returning. A failed write is logged and counted; it does not
undo the others.
"""

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.projects import Project, ProjectTask
from app.services.activity import log_activity
from app.services.common import coerce_uuid
from app.services.observability import CASCADE_DURATION, CASCADE_TASK_UPDATES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeResult:
    project_id: UUID
    due_date: date
    task_count: int
    updated: int
    skipped: int
    failed: int

    @property
    def message(self) -> str:
        return f"Updated project due date and {self.updated} of {self.task_count} task dates"


def plan_due_dates(tasks: Iterable[ProjectTask], anchor: date) -> dict[UUID, date]:
    """Return the new due date for every task that can be rescheduled."""
    tasks = list(tasks)
    plan: dict[UUID, date] = {}
    for task in tasks:
        if task.anchor_offset_days is not None:
            plan[task.id] = anchor + timedelta(days=task.anchor_offset_days)

    pending = [
        task
        for task in tasks
        if task.anchor_offset_days is None
        and task.depends_on_task_id is not None
        and task.dependency_lag_days is not None
    ]
    progressed = True
    while pending and progressed:
        progressed = False
        waiting = []
        for task in pending:
            base = plan.get(task.depends_on_task_id)
            if base is None:
                waiting.append(task)
                continue
            plan[task.id] = base + timedelta(days=task.dependency_lag_days)
            progressed = True
        pending = waiting
    return plan


class DueDateCascade:
    def __init__(self, session_factory: Callable[[], Session], max_workers: int = 8):
        self.session_factory = session_factory
        self.max_workers = max(1, max_workers)

    def _apply(self, task_id: UUID, due_date: date) -> None:
        session = self.session_factory()
        try:
            task = session.get(ProjectTask, task_id)
            if task is None:
                raise LookupError(f"task {task_id} not found")
            task.due_date = due_date
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run(self, db: Session, project_id, new_due_date: date) -> CascadeResult:
        project = db.get(Project, coerce_uuid(project_id))
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")

        started = time.monotonic()
        project.due_date = new_due_date
        log_activity(
            db,
            "updated_due_date",
            "project",
            project.id,
            description=f"Project due date moved to {new_due_date.isoformat()}",
        )
        db.commit()

        tasks = (
            db.query(ProjectTask)
            .filter(ProjectTask.project_id == project.id)
            .filter(ProjectTask.is_active.is_(True))
            .all()
        )
        plan = plan_due_dates(tasks, new_due_date)

        updated = 0
        failed = 0
        if plan:
            workers = min(self.max_workers, len(plan))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="due-date-cascade") as pool:
                futures = {pool.submit(self._apply, task_id, due): task_id for task_id, due in plan.items()}
                for future in as_completed(futures):
                    task_id = futures[future]
                    try:
                        future.result()
                    except Exception:
                        failed += 1
                        CASCADE_TASK_UPDATES.labels(outcome="failed").inc()
                        logger.exception("due_date_cascade_task_failed project_id=%s task_id=%s", project.id, task_id)
                    else:
                        updated += 1
                        CASCADE_TASK_UPDATES.labels(outcome="updated").inc()
            db.expire_all()

        CASCADE_DURATION.observe(time.monotonic() - started)
        result = CascadeResult(
            project_id=project.id,
            due_date=new_due_date,
            task_count=len(tasks),
            updated=updated,
            skipped=len(tasks) - len(plan),
            failed=failed,
        )
        logger.info(
            "due_date_cascade_completed project_id=%s due_date=%s tasks=%s updated=%s skipped=%s failed=%s",
            result.project_id,
            result.due_date,
            result.task_count,
            result.updated,
            result.skipped,
            result.failed,
        )
        return result
