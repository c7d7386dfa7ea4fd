import logging

from sqlalchemy.orm import Session

from app.models.activity import ActivityLog
from app.services.common import apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    action: str,
    entity_type: str,
    entity_id=None,
    description: str | None = None,
    metadata: dict | None = None,
) -> ActivityLog:
    """Stage an activity row in the caller's transaction."""
    entry = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=coerce_uuid(entity_id) if entity_id else None,
        description=description,
        metadata_=metadata,
    )
    db.add(entry)
    logger.debug("activity_logged action=%s entity_type=%s entity_id=%s", action, entity_type, entity_id)
    return entry


class Activity(ListResponseMixin):
    @staticmethod
    def list(
        db: Session,
        entity_type: str | None,
        limit: int,
        offset: int,
    ):
        query = db.query(ActivityLog)
        if entity_type:
            query = query.filter(ActivityLog.entity_type == entity_type)
        query = query.order_by(ActivityLog.created_at.desc())
        return apply_pagination(query, limit, offset).all()


activity = Activity()
