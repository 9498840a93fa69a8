# =============================================================================
# app/routers/notifications.py - Notification Inbox Endpoints
# =============================================================================
# The signed-in user's inbox. Rows are written by the services (promotion
# notifications, bookings) and read here.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.auth import resolve_role
from app.dependencies import CurrentUser
from core.models.notification import NotificationCreate, NotificationReadUpdate, NotificationSettingsUpdate
from core.services.inbox_service import InboxService

router = APIRouter()


@router.get("")
async def list_notifications(
    user: CurrentUser,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    unread: Annotated[bool, Query(description="Only unread notifications")] = False,
):
    return InboxService.list_notifications(user.id, page=page, limit=limit, unread_only=unread)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(payload: NotificationCreate, user: CurrentUser):
    """
    Create a notification for yourself, or for another user as an admin.
    """
    notification = InboxService.create_notification(user.id, resolve_role(user), payload)
    return {"notification": notification}


@router.delete("")
async def clear_notifications(user: CurrentUser):
    return {"success": True, "deleted": InboxService.clear(user.id)}


@router.post("/read-all")
async def mark_all_read(user: CurrentUser):
    return {"success": True, "updated": InboxService.mark_all_read(user.id)}


@router.get("/settings")
async def get_settings(user: CurrentUser):
    return {"settings": InboxService.get_settings(user.id)}


@router.put("/settings")
async def update_settings(changes: NotificationSettingsUpdate, user: CurrentUser):
    return {"settings": InboxService.update_settings(user.id, changes)}


@router.patch("/{notification_id}")
async def set_read(notification_id: str, payload: NotificationReadUpdate, user: CurrentUser):
    """
    Mark one notification read or unread.
    """
    return {"notification": InboxService.set_read(user.id, notification_id, payload.is_read)}


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: CurrentUser):
    InboxService.delete_notification(user.id, notification_id)
    return {"success": True, "message": "Notification deleted"}
