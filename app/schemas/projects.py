from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.projects import (
    DEFAULT_TASK_PRIORITY,
    MeetingType,
    MilestoneStatus,
    ProjectStatus,
    TaskStatus,
)


# -----------------------------------------------------------------------------
# Templates
# -----------------------------------------------------------------------------


class ProjectTemplateBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    name: str = Field(min_length=1, max_length=160)
    description: str | None = None
    meeting_type: MeetingType | None = None
    is_active: bool = True


class ProjectTemplateCreate(ProjectTemplateBase):
    pass


class ProjectTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    description: str | None = None
    meeting_type: MeetingType | None = None
    is_active: bool | None = None


class ProjectTemplateRead(ProjectTemplateBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class ProjectTemplateCopy(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)


class TemplateTaskCount(BaseModel):
    template_id: UUID
    task_count: int


# -----------------------------------------------------------------------------
# Milestones
# -----------------------------------------------------------------------------


class MilestoneBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    status: MilestoneStatus = MilestoneStatus.pending
    due_date: date | None = None
    sort_order: int = 0


class MilestoneCreate(MilestoneBase):
    template_id: UUID | None = None
    project_id: UUID | None = None

    @model_validator(mode="after")
    def _validate_owner(self) -> MilestoneCreate:
        if (self.template_id is None) == (self.project_id is None):
            raise ValueError("Exactly one of template_id or project_id is required")
        return self


class MilestoneUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    status: MilestoneStatus | None = None
    due_date: date | None = None
    sort_order: int | None = None


class MilestoneRead(MilestoneBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    template_id: UUID | None = None
    project_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class MilestoneReorder(BaseModel):
    milestone_ids: list[UUID] = Field(min_length=1)


# -----------------------------------------------------------------------------
# Template tasks
# -----------------------------------------------------------------------------


class ProjectTemplateTaskBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    template_id: UUID
    milestone_id: UUID | None = None
    parent_task_id: UUID | None = None
    depends_on_template_task_id: UUID | None = None
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    priority: int = Field(default=DEFAULT_TASK_PRIORITY, ge=1, le=50)
    days_from_anchor: int | None = None
    due_date: date | None = None
    assigned_roles: list[str] | None = None
    assigned_contact_ids: list[UUID] | None = None
    sort_order: int = 0
    level: int = Field(default=0, ge=0)
    is_active: bool = True


class ProjectTemplateTaskCreate(ProjectTemplateTaskBase):
    pass


class ProjectTemplateTaskUpdate(BaseModel):
    milestone_id: UUID | None = None
    parent_task_id: UUID | None = None
    depends_on_template_task_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    priority: int | None = Field(default=None, ge=1, le=50)
    days_from_anchor: int | None = None
    due_date: date | None = None
    assigned_roles: list[str] | None = None
    assigned_contact_ids: list[UUID] | None = None
    sort_order: int | None = None
    level: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class ProjectTemplateTaskRead(ProjectTemplateTaskBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------


class ProjectBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    name: str = Field(min_length=1, max_length=160)
    description: str | None = None
    client_id: UUID | None = None
    project_type: MeetingType | None = None
    status: ProjectStatus = ProjectStatus.planning
    start_date: date | None = None
    end_date: date | None = None
    due_date: date | None = None
    progress: int = Field(default=0, ge=0, le=100)
    is_active: bool = True


class ProjectCreate(ProjectBase):
    @field_validator("project_type", mode="before")
    @classmethod
    def _unknown_meeting_type_is_none(cls, value):
        # Unrecognized meeting types create a plain project.
        if value is None or isinstance(value, MeetingType):
            return value
        try:
            return MeetingType(str(value).strip().lower())
        except ValueError:
            return None


class ProjectFromTemplate(BaseModel):
    template_id: UUID
    name: str = Field(min_length=1, max_length=160)
    due_date: date
    description: str | None = None
    client_id: UUID | None = None
    status: ProjectStatus = ProjectStatus.planning


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    description: str | None = None
    client_id: UUID | None = None
    project_type: MeetingType | None = None
    status: ProjectStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    is_active: bool | None = None

    @model_validator(mode="after")
    def _validate_dates(self) -> ProjectUpdate:
        if self.start_date and self.end_date:
            if self.start_date > self.end_date:
                raise ValueError("start_date must not be after end_date")
        return self


class ProjectRead(ProjectBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    template_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class ProjectDueDateUpdate(BaseModel):
    due_date: date


class DueDateCascadeRead(BaseModel):
    project_id: UUID
    due_date: date
    task_count: int
    updated: int
    skipped: int
    failed: int
    message: str


class RoleResolutionRead(BaseModel):
    project_id: UUID
    tasks_checked: int
    tasks_updated: int
    pending_roles: list[str]


# -----------------------------------------------------------------------------
# Project tasks
# -----------------------------------------------------------------------------


class ProjectTaskBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    project_id: UUID
    milestone_id: UUID | None = None
    parent_task_id: UUID | None = None
    depends_on_task_id: UUID | None = None
    dependency_lag_days: int | None = None
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus = TaskStatus.todo
    priority: int = Field(default=DEFAULT_TASK_PRIORITY, ge=1, le=50)
    due_date: date | None = None
    assigned_roles: list[str] | None = None
    sort_order: int = 0
    level: int = Field(default=0, ge=0)
    days_from_anchor: int | None = None
    anchor_offset_days: int | None = None


class ProjectTaskCreate(ProjectTaskBase):
    assigned_contact_ids: list[UUID] | None = None


class ProjectTaskUpdate(BaseModel):
    milestone_id: UUID | None = None
    parent_task_id: UUID | None = None
    depends_on_task_id: UUID | None = None
    dependency_lag_days: int | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None
    priority: int | None = Field(default=None, ge=1, le=50)
    due_date: date | None = None
    assigned_contact_ids: list[UUID] | None = None
    assigned_roles: list[str] | None = None
    sort_order: int | None = None
    level: int | None = Field(default=None, ge=0)
    days_from_anchor: int | None = None
    anchor_offset_days: int | None = None


class ProjectTaskRead(ProjectTaskBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    template_task_id: UUID | None = None
    assigned_contact_ids: list[UUID] = Field(default_factory=list)
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TaskTreeNode(ProjectTaskRead):
    children: list[TaskTreeNode] = Field(default_factory=list)


class MilestoneTaskTree(BaseModel):
    milestone: MilestoneRead | None = None
    tasks: list[TaskTreeNode]


class SkippedTemplateTask(BaseModel):
    template_task_id: UUID
    title: str
    reason: str


class ProjectCreateResponse(BaseModel):
    project: ProjectRead
    milestones: list[MilestoneRead] = Field(default_factory=list)
    tasks: list[ProjectTaskRead] = Field(default_factory=list)
    skipped: list[SkippedTemplateTask] = Field(default_factory=list)
    message: str


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------


class CommentBody(BaseModel):
    author_contact_id: UUID | None = None
    body: str = Field(min_length=1)


class ProjectTaskCommentCreate(BaseModel):
    task_id: UUID
    author_contact_id: UUID | None = None
    body: str = Field(min_length=1)


class ProjectTaskCommentRead(ProjectTaskCommentCreate):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    mentioned_contact_ids: list[UUID] | None = None
    created_at: datetime


class ProjectCommentCreate(BaseModel):
    project_id: UUID
    author_contact_id: UUID | None = None
    body: str = Field(min_length=1)


class ProjectCommentRead(ProjectCommentCreate):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    mentioned_contact_ids: list[UUID] | None = None
    created_at: datetime
