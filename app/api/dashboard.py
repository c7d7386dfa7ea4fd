from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.dashboard import ActivityLogRead, DashboardStats
from app.schemas.projects import ProjectRead
from app.services import activity as activity_service
from app.services import dashboard as dashboard_service

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardStats, tags=["dashboard"])
def dashboard_stats(db: Session = Depends(get_db)):
    return dashboard_service.stats(db)


@router.get("/dashboard/activity", response_model=ListResponse[ActivityLogRead], tags=["dashboard"])
def dashboard_activity(
    entity_type: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return activity_service.activity.list_response(db, entity_type, limit, offset)


@router.get("/dashboard/projects-due", response_model=list[ProjectRead], tags=["dashboard"])
def dashboard_projects_due(
    days: int = Query(default=dashboard_service.PROJECTS_DUE_WINDOW_DAYS, ge=0, le=365),
    db: Session = Depends(get_db),
):
    return dashboard_service.projects_due(db, days=days)
