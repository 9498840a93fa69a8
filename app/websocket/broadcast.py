# =============================================================================
# app/websocket/broadcast.py - Cross-Process Broadcasting
# =============================================================================
# Lets services and Celery workers push events to connected WebSocket
# clients without holding a socket themselves.
#
# Uses Redis pub/sub for cross-process communication:
# - Producers call publish_event() to send events
# - The FastAPI process subscribes and broadcasts to the room
#
# Rooms:
#   - user:<user_id>            private room joined on connect
#   - conversation:<id>         chat room joined with join-conversation
#
# Events published here:
#   - notification: promotion / payment notices
#   - rating_created: a client rated the braider
#   - new-message: a message sent through the REST API
# =============================================================================

import json
import logging
from typing import Any

import redis

from app.config import settings

logger = logging.getLogger(__name__)

# Redis channel for WebSocket events
WEBSOCKET_CHANNEL = "braidmarket:websocket:events"


def user_room(user_id: Any) -> str:
    return f"user:{user_id}"


def conversation_room(conversation_id: Any) -> str:
    return f"conversation:{conversation_id}"


def get_redis_client() -> redis.Redis:
    """Get a Redis client for pub/sub operations."""
    return redis.from_url(settings.REDIS_URL)


def publish_event(room: str, event_type: str, data: dict[str, Any]) -> bool:
    """
    Publish an event that will be broadcast to a WebSocket room.

    Delivery is best effort: a Redis outage is logged and reported through
    the return value, never raised into the caller's request.

    Returns:
        bool: True if published successfully
    """
    try:
        message = json.dumps({"room": room, "type": event_type, **data}, default=str)
        get_redis_client().publish(WEBSOCKET_CHANNEL, message)

        logger.debug(f"Published {event_type} event to {room}")
        return True

    except redis.RedisError as e:
        logger.error(f"Failed to publish {event_type} event to {room}: {e}")
        return False


def publish_to_user(user_id: Any, event_type: str, data: dict[str, Any]) -> bool:
    """Publish to a user's private room."""
    return publish_event(user_room(user_id), event_type, data)


def publish_notification(user_id: Any, notification: dict[str, Any]) -> bool:
    """
    Push a stored notification row to the user in real time.
    """
    return publish_to_user(user_id, "notification", {"notification": notification})


def publish_new_message(conversation_id: Any, message: dict[str, Any]) -> bool:
    """
    Relay a message created through REST to the conversation room.
    """
    return publish_event(conversation_room(conversation_id), "new-message", {"message": message})
