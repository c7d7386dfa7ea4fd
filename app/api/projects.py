from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_due_date_cascade, get_project_instantiator, get_role_resolver
from app.schemas.common import ListResponse
from app.schemas.projects import (
    CommentBody,
    DueDateCascadeRead,
    MilestoneRead,
    MilestoneTaskTree,
    ProjectCommentCreate,
    ProjectCommentRead,
    ProjectCreate,
    ProjectCreateResponse,
    ProjectDueDateUpdate,
    ProjectFromTemplate,
    ProjectRead,
    ProjectTaskCommentCreate,
    ProjectTaskCommentRead,
    ProjectTaskCreate,
    ProjectTaskRead,
    ProjectTaskUpdate,
    ProjectUpdate,
    RoleResolutionRead,
    SkippedTemplateTask,
    TaskTreeNode,
)
from app.services import projects as projects_service
from app.services import task_hierarchy
from app.services.due_date_cascade import DueDateCascade
from app.services.project_instantiator import InstantiationResult, ProjectInstantiator
from app.services.role_resolver import RoleResolver

router = APIRouter()


def _creation_response(result: InstantiationResult) -> ProjectCreateResponse:
    return ProjectCreateResponse(
        project=ProjectRead.model_validate(result.project),
        milestones=[MilestoneRead.model_validate(milestone) for milestone in result.milestones],
        tasks=[ProjectTaskRead.model_validate(task) for task in result.tasks],
        skipped=[SkippedTemplateTask(**asdict(item)) for item in result.skipped],
        message=result.message,
    )


def _tree_node(node: task_hierarchy.TaskNode) -> TaskTreeNode:
    data = ProjectTaskRead.model_validate(node.task).model_dump()
    return TaskTreeNode(**data, children=[_tree_node(child) for child in node.children])


@router.post(
    "/projects",
    response_model=ProjectCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    instantiator: ProjectInstantiator = Depends(get_project_instantiator),
):
    return _creation_response(instantiator.create_project(db, payload))


@router.post(
    "/projects/from-template",
    response_model=ProjectCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
def create_project_from_template(
    payload: ProjectFromTemplate,
    db: Session = Depends(get_db),
    instantiator: ProjectInstantiator = Depends(get_project_instantiator),
):
    return _creation_response(instantiator.create_from_template(db, payload))


@router.get("/projects", response_model=ListResponse[ProjectRead], tags=["projects"])
def list_projects(
    client_id: str | None = None,
    status: str | None = None,
    project_type: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.projects.list_response(
        db,
        client_id,
        status,
        project_type,
        search,
        is_active,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/projects/{project_id}", response_model=ProjectRead, tags=["projects"])
def get_project(project_id: str, db: Session = Depends(get_db)):
    return projects_service.projects.get(db, project_id)


@router.patch("/projects/{project_id}", response_model=ProjectRead, tags=["projects"])
def update_project(project_id: str, payload: ProjectUpdate, db: Session = Depends(get_db)):
    return projects_service.projects.update(db, project_id, payload)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["projects"])
def delete_project(project_id: str, db: Session = Depends(get_db)):
    projects_service.projects.delete(db, project_id)


@router.put(
    "/projects/{project_id}/update-due-date",
    response_model=DueDateCascadeRead,
    tags=["projects"],
)
def update_project_due_date(
    project_id: str,
    payload: ProjectDueDateUpdate,
    db: Session = Depends(get_db),
    cascade: DueDateCascade = Depends(get_due_date_cascade),
):
    result = cascade.run(db, project_id, payload.due_date)
    return DueDateCascadeRead(**asdict(result), message=result.message)


@router.post(
    "/projects/{project_id}/resolve-roles",
    response_model=RoleResolutionRead,
    tags=["projects"],
)
def resolve_project_roles(
    project_id: str,
    db: Session = Depends(get_db),
    role_resolver: RoleResolver = Depends(get_role_resolver),
):
    project = projects_service.projects.get(db, project_id)
    return asdict(role_resolver.resolve_project(db, project.id))


@router.get("/projects/{project_id}/tasks", response_model=list[ProjectTaskRead], tags=["projects"])
def list_project_tasks_flat(project_id: str, db: Session = Depends(get_db)):
    return projects_service.project_tasks.list_for_project(db, project_id)


@router.get(
    "/projects/{project_id}/task-hierarchy",
    response_model=list[MilestoneTaskTree],
    tags=["projects"],
)
def project_task_hierarchy(project_id: str, db: Session = Depends(get_db)):
    milestones = projects_service.milestones.list_for_project(db, project_id)
    tasks = projects_service.project_tasks.list_for_project(db, project_id)
    return [
        MilestoneTaskTree(
            milestone=MilestoneRead.model_validate(milestone) if milestone is not None else None,
            tasks=[_tree_node(node) for node in nodes],
        )
        for milestone, nodes in task_hierarchy.build_milestone_trees(milestones, tasks)
    ]


@router.get(
    "/projects/{project_id}/milestones",
    response_model=list[MilestoneRead],
    tags=["projects"],
)
def list_project_milestones(project_id: str, db: Session = Depends(get_db)):
    return projects_service.milestones.list_for_project(db, project_id)


@router.post(
    "/projects/{project_id}/comments",
    response_model=ProjectCommentRead,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
def create_project_comment(project_id: str, payload: CommentBody, db: Session = Depends(get_db)):
    project = projects_service.projects.get(db, project_id)
    return projects_service.project_comments.create(
        db, ProjectCommentCreate(project_id=project.id, **payload.model_dump())
    )


@router.get(
    "/projects/{project_id}/comments",
    response_model=ListResponse[ProjectCommentRead],
    tags=["projects"],
)
def list_project_comments(
    project_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.project_comments.list_response(db, project_id, limit, offset)


@router.post(
    "/project-tasks",
    response_model=ProjectTaskRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-tasks"],
)
def create_project_task(payload: ProjectTaskCreate, db: Session = Depends(get_db)):
    return projects_service.project_tasks.create(db, payload)


@router.get("/project-tasks", response_model=ListResponse[ProjectTaskRead], tags=["project-tasks"])
def list_project_tasks(
    project_id: str | None = None,
    milestone_id: str | None = None,
    status: str | None = None,
    assigned_contact_id: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.project_tasks.list_response(
        db,
        project_id,
        milestone_id,
        status,
        assigned_contact_id,
        is_active,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/project-tasks/{task_id}", response_model=ProjectTaskRead, tags=["project-tasks"])
def get_project_task(task_id: str, db: Session = Depends(get_db)):
    return projects_service.project_tasks.get(db, task_id)


@router.patch("/project-tasks/{task_id}", response_model=ProjectTaskRead, tags=["project-tasks"])
def update_project_task(task_id: str, payload: ProjectTaskUpdate, db: Session = Depends(get_db)):
    return projects_service.project_tasks.update(db, task_id, payload)


@router.delete(
    "/project-tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["project-tasks"],
)
def delete_project_task(task_id: str, db: Session = Depends(get_db)):
    projects_service.project_tasks.delete(db, task_id)


@router.post(
    "/project-tasks/{task_id}/comments",
    response_model=ProjectTaskCommentRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-tasks"],
)
def create_task_comment(task_id: str, payload: CommentBody, db: Session = Depends(get_db)):
    task = projects_service.project_tasks.get(db, task_id)
    return projects_service.project_task_comments.create(
        db, ProjectTaskCommentCreate(task_id=task.id, **payload.model_dump())
    )


@router.get(
    "/project-tasks/{task_id}/comments",
    response_model=ListResponse[ProjectTaskCommentRead],
    tags=["project-tasks"],
)
def list_task_comments(
    task_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.project_task_comments.list_response(db, task_id, limit, offset)


@router.get("/tasks/upcoming", response_model=list[ProjectTaskRead], tags=["project-tasks"])
def upcoming_tasks(
    days: int = Query(default=projects_service.UPCOMING_TASK_DAYS, ge=0, le=90),
    db: Session = Depends(get_db),
):
    return projects_service.project_tasks.upcoming(db, days=days)


@router.get("/tasks/overdue", response_model=list[ProjectTaskRead], tags=["project-tasks"])
def overdue_tasks(db: Session = Depends(get_db)):
    return projects_service.project_tasks.overdue(db)
