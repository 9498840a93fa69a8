# =============================================================================
# core/services/inbox_service.py - Notification Inbox
# =============================================================================
# Read side of `notifications`: the signed-in user's inbox, read state,
# deletion and display settings. Every query is scoped by user_id so a user
# can never see or touch another user's notifications.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError, RoleRequiredError
from app.websocket.broadcast import publish_notification
from core.models.notification import DEFAULT_INBOX_SETTINGS, NotificationCreate, NotificationSettingsUpdate
from core.roles import UserRole
from lib.supabase_client import SupabaseClient
from lib.utils import to_iso, utc_now

logger = logging.getLogger(__name__)


class InboxService:
    """
    Service for a user's notification inbox.
    """

    @staticmethod
    def list_notifications(
        user_id: UUID | str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> dict[str, Any]:
        """
        Newest notifications first.

        Returns:
            {"notifications", "total", "has_more", "unread_count"}
        """
        user_id = str(user_id)
        filters: dict[str, Any] = {"user_id": user_id}
        if unread_only:
            filters["is_read"] = False

        total = SupabaseClient.count("notifications", **filters)
        notifications = SupabaseClient.fetch_many(
            "notifications",
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=(page - 1) * limit,
            **filters,
        )
        unread = total if unread_only else SupabaseClient.count("notifications", user_id=user_id, is_read=False)

        return {
            "notifications": notifications,
            "total": total,
            "has_more": page * limit < total,
            "unread_count": unread,
        }

    @staticmethod
    def create_notification(user_id: UUID | str, role: str, payload: NotificationCreate) -> dict[str, Any]:
        """
        Store a notification and push it in real time.

        Raises:
            RoleRequiredError: If a non-admin targets another user
        """
        recipient = str(user_id)
        if payload.target_user_id and payload.target_user_id != recipient:
            if role != UserRole.ADMIN.value:
                raise RoleRequiredError([UserRole.ADMIN.value], role)
            recipient = payload.target_user_id

        notification = SupabaseClient.insert_one("notifications", {
            **payload.model_dump(exclude={"target_user_id"}, mode="json"),
            "user_id": recipient,
            "is_read": False,
        })
        publish_notification(recipient, notification)
        logger.info(f"Notification {notification['id']} created for {recipient} by {user_id}")
        return notification

    @staticmethod
    def set_read(user_id: UUID | str, notification_id: str, is_read: bool) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the notification doesn't exist for this user
        """
        rows = SupabaseClient.update_where(
            "notifications",
            {"is_read": is_read},
            id=notification_id,
            user_id=str(user_id),
        )
        if not rows:
            raise NotFoundError("notification", notification_id)
        return rows[0]

    @staticmethod
    def mark_all_read(user_id: UUID | str) -> int:
        rows = SupabaseClient.update_where(
            "notifications",
            {"is_read": True},
            user_id=str(user_id),
            is_read=False,
        )
        return len(rows)

    @staticmethod
    def delete_notification(user_id: UUID | str, notification_id: str) -> None:
        if not SupabaseClient.delete_where("notifications", id=notification_id, user_id=str(user_id)):
            raise NotFoundError("notification", notification_id)

    @staticmethod
    def clear(user_id: UUID | str) -> int:
        """Delete every notification of the user. Returns how many were removed."""
        removed = SupabaseClient.delete_where("notifications", user_id=str(user_id))
        logger.info(f"Cleared {len(removed)} notifications for {user_id}")
        return len(removed)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def get_settings(user_id: UUID | str) -> dict[str, Any]:
        """The user's inbox settings, created with defaults on first read."""
        user_id = str(user_id)
        settings = SupabaseClient.fetch_one("notification_settings", user_id=user_id)
        if settings:
            return settings
        return SupabaseClient.insert_one("notification_settings", {"user_id": user_id, **DEFAULT_INBOX_SETTINGS})

    @staticmethod
    def update_settings(user_id: UUID | str, changes: NotificationSettingsUpdate) -> dict[str, Any]:
        current = InboxService.get_settings(user_id)
        data = changes.model_dump(exclude_none=True)
        if not data:
            return current

        data["updated_at"] = to_iso(utc_now())
        rows = SupabaseClient.update_where("notification_settings", data, user_id=str(user_id))
        return rows[0] if rows else {**current, **data}
