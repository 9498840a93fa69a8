# =============================================================================
# core/models/notification.py - Notification Inbox Schemas
# =============================================================================
# Notifications are rows in `notifications` shown in the user's inbox and
# pushed over the realtime channel. Per-user display preferences live in
# `notification_settings`.
# =============================================================================

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Inbox category, drives the icon and colour in the client."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    ORDER = "order"
    MESSAGE = "message"
    BOOKING = "booking"
    SYSTEM = "system"


class NotificationCreate(BaseModel):
    """
    Schema for creating a notification.

    target_user_id sends it to someone else and is reserved for admins.
    """
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    is_important: bool = False
    action_url: str | None = None
    action_label: str | None = Field(default=None, max_length=60)
    metadata: dict[str, Any] = Field(default_factory=dict)
    target_user_id: str | None = None


class NotificationReadUpdate(BaseModel):
    is_read: bool


DEFAULT_INBOX_SETTINGS: dict[str, bool] = {
    "enable_toasts": True,
    "enable_sound": True,
    "enable_desktop": False,
    "auto_mark_as_read": False,
}


class NotificationSettingsUpdate(BaseModel):
    enable_toasts: bool | None = None
    enable_sound: bool | None = None
    enable_desktop: bool | None = None
    auto_mark_as_read: bool | None = None
