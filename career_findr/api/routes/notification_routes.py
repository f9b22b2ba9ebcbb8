"""
Notification Routes

GET /notifications - Latest notifications and unread count
PUT /notifications/read-all - Mark all own notifications read
PUT /notifications/{id}/read - Mark one notification read
"""

from fastapi import APIRouter, HTTPException, Depends

from career_findr.core.auth import get_current_user, get_view_context
from career_findr.core.impersonation import ViewContext
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import MessageResponse, NotificationFeed, UserAccount
from career_findr.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(store=Depends(get_document_store)) -> NotificationService:
    return NotificationService(store)


@router.get("", response_model=NotificationFeed)
def get_notifications(
    ctx: ViewContext = Depends(get_view_context),
    service: NotificationService = Depends(get_notification_service),
):
    notifications = service.list_for_user(ctx.active_user.id)
    return NotificationFeed(
        notifications=notifications,
        unread_count=sum(1 for n in notifications if not n.read)
    )


# Read flags belong to the recipient, so these use the signed-in account
# even while an admin is viewing as someone else.

@router.put("/read-all", response_model=MessageResponse)
def mark_all_read(
    user: UserAccount = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = service.mark_all_as_read(user.id)
    return MessageResponse(message=f"{updated} notifications marked as read")


@router.put("/{notification_id}/read", response_model=MessageResponse)
def mark_read(
    notification_id: str,
    user: UserAccount = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    if not service.mark_as_read(notification_id, user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification marked as read")
