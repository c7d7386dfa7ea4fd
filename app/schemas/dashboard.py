from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DashboardStats(BaseModel):
    total_clients: int
    active_projects: int
    prospects: int
    overdue_tasks: int


class ActivityLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    action: str
    entity_type: str
    entity_id: UUID | None = None
    description: str | None = None
    metadata_: dict | None = Field(default=None, serialization_alias="metadata")
    created_at: datetime
