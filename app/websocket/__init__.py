# =============================================================================
# app/websocket/__init__.py - WebSocket Module
# =============================================================================
# Provides realtime chat and notifications.
#
# Usage:
#   # Broadcast to a room (from FastAPI)
#   from app.websocket import websocket_manager
#
#   await websocket_manager.broadcast("conversation:42", {"type": "new-message", ...})
#
#   # Publish from services and Celery workers
#   from app.websocket.broadcast import publish_notification
#
#   publish_notification(user_id, notification_row)
# =============================================================================

from app.websocket.manager import websocket_manager
from app.websocket.broadcast import (
    publish_event,
    publish_new_message,
    publish_notification,
    publish_to_user,
    WEBSOCKET_CHANNEL,
)

__all__ = [
    "websocket_manager",
    "publish_event",
    "publish_new_message",
    "publish_notification",
    "publish_to_user",
    "WEBSOCKET_CHANNEL",
]
