from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.projects import (
    MilestoneCreate,
    MilestoneRead,
    MilestoneReorder,
    MilestoneUpdate,
    ProjectTemplateCopy,
    ProjectTemplateCreate,
    ProjectTemplateRead,
    ProjectTemplateTaskCreate,
    ProjectTemplateTaskRead,
    ProjectTemplateTaskUpdate,
    ProjectTemplateUpdate,
    TemplateTaskCount,
)
from app.services import project_templates as templates_service
from app.services import projects as projects_service

router = APIRouter()


@router.post(
    "/project-templates",
    response_model=ProjectTemplateRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-templates"],
)
def create_project_template(payload: ProjectTemplateCreate, db: Session = Depends(get_db)):
    return templates_service.project_templates.create(db, payload)


@router.get(
    "/project-templates",
    response_model=ListResponse[ProjectTemplateRead],
    tags=["project-templates"],
)
def list_project_templates(
    meeting_type: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return templates_service.project_templates.list_response(
        db, meeting_type, is_active, order_by, order_dir, limit, offset
    )


@router.get(
    "/project-templates/{template_id}",
    response_model=ProjectTemplateRead,
    tags=["project-templates"],
)
def get_project_template(template_id: str, db: Session = Depends(get_db)):
    return templates_service.project_templates.get(db, template_id)


@router.patch(
    "/project-templates/{template_id}",
    response_model=ProjectTemplateRead,
    tags=["project-templates"],
)
def update_project_template(template_id: str, payload: ProjectTemplateUpdate, db: Session = Depends(get_db)):
    return templates_service.project_templates.update(db, template_id, payload)


@router.delete(
    "/project-templates/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["project-templates"],
)
def delete_project_template(template_id: str, db: Session = Depends(get_db)):
    templates_service.project_templates.delete(db, template_id)


@router.post(
    "/project-templates/{template_id}/copy",
    response_model=ProjectTemplateRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-templates"],
)
def copy_project_template(
    template_id: str,
    payload: ProjectTemplateCopy | None = None,
    db: Session = Depends(get_db),
):
    return templates_service.project_templates.copy(db, template_id, payload)


@router.get(
    "/project-templates/{template_id}/task-count",
    response_model=TemplateTaskCount,
    tags=["project-templates"],
)
def project_template_task_count(template_id: str, db: Session = Depends(get_db)):
    template = templates_service.project_templates.get(db, template_id)
    return {
        "template_id": template.id,
        "task_count": templates_service.project_templates.task_count(db, template_id),
    }


@router.get(
    "/project-templates/{template_id}/milestones",
    response_model=list[MilestoneRead],
    tags=["project-templates"],
)
def list_project_template_milestones(template_id: str, db: Session = Depends(get_db)):
    return templates_service.project_templates.list_milestones(db, template_id)


@router.get(
    "/project-templates/{template_id}/tasks",
    response_model=list[ProjectTemplateTaskRead],
    tags=["project-templates"],
)
def list_project_template_tasks_for_template(template_id: str, db: Session = Depends(get_db)):
    return templates_service.project_templates.list_tasks(db, template_id)


@router.post(
    "/template-tasks",
    response_model=ProjectTemplateTaskRead,
    status_code=status.HTTP_201_CREATED,
    tags=["template-tasks"],
)
def create_template_task(payload: ProjectTemplateTaskCreate, db: Session = Depends(get_db)):
    return templates_service.project_template_tasks.create(db, payload)


@router.get(
    "/template-tasks",
    response_model=ListResponse[ProjectTemplateTaskRead],
    tags=["template-tasks"],
)
def list_template_tasks(
    template_id: str | None = None,
    milestone_id: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="sort_order"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return templates_service.project_template_tasks.list_response(
        db, template_id, milestone_id, is_active, order_by, order_dir, limit, offset
    )


@router.get("/template-tasks/{task_id}", response_model=ProjectTemplateTaskRead, tags=["template-tasks"])
def get_template_task(task_id: str, db: Session = Depends(get_db)):
    return templates_service.project_template_tasks.get(db, task_id)


@router.patch("/template-tasks/{task_id}", response_model=ProjectTemplateTaskRead, tags=["template-tasks"])
def update_template_task(task_id: str, payload: ProjectTemplateTaskUpdate, db: Session = Depends(get_db)):
    return templates_service.project_template_tasks.update(db, task_id, payload)


@router.delete(
    "/template-tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["template-tasks"],
)
def delete_template_task(task_id: str, db: Session = Depends(get_db)):
    templates_service.project_template_tasks.delete(db, task_id)


@router.post(
    "/milestones",
    response_model=MilestoneRead,
    status_code=status.HTTP_201_CREATED,
    tags=["milestones"],
)
def create_milestone(payload: MilestoneCreate, db: Session = Depends(get_db)):
    return projects_service.milestones.create(db, payload)


@router.post("/milestones/reorder", response_model=list[MilestoneRead], tags=["milestones"])
def reorder_milestones(payload: MilestoneReorder, db: Session = Depends(get_db)):
    return projects_service.milestones.reorder(db, payload.milestone_ids)


@router.get("/milestones/{milestone_id}", response_model=MilestoneRead, tags=["milestones"])
def get_milestone(milestone_id: str, db: Session = Depends(get_db)):
    return projects_service.milestones.get(db, milestone_id)


@router.patch("/milestones/{milestone_id}", response_model=MilestoneRead, tags=["milestones"])
def update_milestone(milestone_id: str, payload: MilestoneUpdate, db: Session = Depends(get_db)):
    return projects_service.milestones.update(db, milestone_id, payload)


@router.delete(
    "/milestones/{milestone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["milestones"],
)
def delete_milestone(milestone_id: str, db: Session = Depends(get_db)):
    projects_service.milestones.delete(db, milestone_id)
