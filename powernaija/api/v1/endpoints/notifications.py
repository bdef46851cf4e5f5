from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.db.session import atomic
from powernaija.models.user import User
from powernaija.schemas.common import envelope
from powernaija.schemas.notification import NotificationList, NotificationResponse
from powernaija.services.notifications import NotificationService

router = APIRouter()


@router.get("")
def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=100),
    service: NotificationService = Depends(deps.get_notification_service),
    current_user: User = Depends(deps.get_current_user),
):
    """Most recent notifications first, with the unread count."""
    items, unread = service.list_for_user(current_user.id, unread_only, limit)
    return envelope(
        NotificationList(
            notifications=[NotificationResponse.model_validate(item) for item in items],
            unread_count=unread,
        )
    )


@router.post("/read-all")
def mark_all_read(
    db: Session = Depends(deps.get_db),
    service: NotificationService = Depends(deps.get_notification_service),
    current_user: User = Depends(deps.get_current_user),
):
    with atomic(db):
        updated = service.mark_all_read(current_user.id)
    return envelope({"updated": updated}, "All notifications marked as read")


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: str,
    db: Session = Depends(deps.get_db),
    service: NotificationService = Depends(deps.get_notification_service),
    current_user: User = Depends(deps.get_current_user),
):
    with atomic(db):
        notification = service.mark_read(current_user.id, notification_id)
    return envelope(NotificationResponse.model_validate(notification))
