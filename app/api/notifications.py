from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.notifications import DueReminderResult, DueReminderRun, NotificationRead, UnreadCount
from app.services import notifications as notifications_service

router = APIRouter()


@router.get("/notifications", response_model=ListResponse[NotificationRead], tags=["notifications"])
def list_notifications(
    recipient_contact_id: str,
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return notifications_service.notifications.list_response(db, recipient_contact_id, unread_only, limit, offset)


@router.get("/notifications/unread-count", response_model=UnreadCount, tags=["notifications"])
def unread_notification_count(recipient_contact_id: str, db: Session = Depends(get_db)):
    return {
        "recipient_contact_id": recipient_contact_id,
        "unread": notifications_service.notifications.unread_count(db, recipient_contact_id),
    }


@router.post("/notifications/mark-all-read", tags=["notifications"])
def mark_all_notifications_read(recipient_contact_id: str, db: Session = Depends(get_db)):
    updated = notifications_service.notifications.mark_all_read(db, recipient_contact_id)
    return {"updated": updated}


@router.post("/notifications/due-reminders", response_model=DueReminderResult, tags=["notifications"])
def run_due_reminders(payload: DueReminderRun, db: Session = Depends(get_db)):
    created = notifications_service.generate_due_reminders(db, today=payload.today, window_days=payload.window_days)
    return {"created": created}


@router.post(
    "/notifications/{notification_id}/read",
    response_model=NotificationRead,
    tags=["notifications"],
)
def mark_notification_read(notification_id: str, db: Session = Depends(get_db)):
    return notifications_service.notifications.mark_read(db, notification_id)


@router.post(
    "/notifications/{notification_id}/unread",
    response_model=NotificationRead,
    tags=["notifications"],
)
def mark_notification_unread(notification_id: str, db: Session = Depends(get_db)):
    return notifications_service.notifications.mark_unread(db, notification_id)
