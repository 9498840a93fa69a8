# =============================================================================
# app/websocket/chat.py - Realtime Chat Events
# =============================================================================
# Handles JSON events sent by chat clients over /ws/chat.
#
# Client -> server:
#   {"type": "join-conversation", "conversation_id": "..."}
#   {"type": "send-message", "conversation_id": "...", "content": "...",
#    "message_type": "text", "reply_to_message_id": null, "temp_id": "..."}
#   {"type": "typing", "conversation_id": "...", "is_typing": true, "user_name": "..."}
#   {"type": "mark-read", "conversation_id": "...", "message_id": "..."}
#
# Server -> client:
#   user-joined, user-left, message-sent, new-message, message-error,
#   user-typing, message-read, error
#
# Persistence and access checks are delegated to ChatService.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import WebSocket

from app.exceptions import MarketplaceException
from app.websocket.broadcast import conversation_room, user_room
from app.websocket.manager import ConnectionManager
from core.services.chat_service import ChatService
from lib.supabase_client import SupabaseClientError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatUser:
    """Identity of an authenticated chat socket."""
    id: str
    email: str | None = None
    name: str | None = None


class ChatEventHandler:
    """
    Dispatches chat events for one connection manager.
    """

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def handle(self, websocket: WebSocket, user: ChatUser, event: dict[str, Any]) -> None:
        handlers = {
            "join-conversation": self.join_conversation,
            "send-message": self.send_message,
            "typing": self.typing,
            "mark-read": self.mark_read,
        }

        event_type = event.get("type")
        handler = handlers.get(event_type)
        if handler is None:
            await websocket.send_json({"type": "error", "message": f"Unknown event type: {event_type}"})
            return

        await handler(websocket, user, event)

    async def join_conversation(self, websocket: WebSocket, user: ChatUser, event: dict[str, Any]) -> None:
        conversation_id = event.get("conversation_id")
        if not conversation_id or not ChatService.can_access_conversation(user.id, conversation_id):
            logger.warning(f"User {user.id} denied access to conversation {conversation_id}")
            await websocket.send_json({"type": "error", "message": "Access denied to conversation"})
            return

        room = conversation_room(conversation_id)
        self.manager.leave_all(websocket, keep=[user_room(user.id)])
        self.manager.join(room, websocket)
        logger.info(f"User {user.id} joined {room}")

        await self.manager.broadcast(room, {
            "type": "user-joined",
            "user_id": user.id,
            "user_name": user.name,
            "user_email": user.email,
        }, exclude=websocket)

    async def send_message(self, websocket: WebSocket, user: ChatUser, event: dict[str, Any]) -> None:
        conversation_id = event.get("conversation_id")
        temp_id = event.get("temp_id")

        if not conversation_id or not ChatService.can_access_conversation(user.id, conversation_id):
            await websocket.send_json({"type": "message-error", "temp_id": temp_id, "message": "Access denied"})
            return

        try:
            message = ChatService.send_message(
                user.id,
                conversation_id,
                event.get("content") or "",
                message_type=event.get("message_type") or "text",
                reply_to_message_id=event.get("reply_to_message_id"),
            )
        except (MarketplaceException, SupabaseClientError, ValueError) as e:
            logger.error(f"Failed to persist message from {user.id}: {e}")
            await websocket.send_json({
                "type": "message-error",
                "temp_id": temp_id,
                "message": "Failed to create message",
            })
            return

        await websocket.send_json({"type": "message-sent", "temp_id": temp_id, "message": message})
        await self.manager.broadcast(
            conversation_room(conversation_id),
            {"type": "new-message", "message": message},
            exclude=websocket,
        )

    async def typing(self, websocket: WebSocket, user: ChatUser, event: dict[str, Any]) -> None:
        conversation_id = event.get("conversation_id")
        if not conversation_id or not ChatService.can_access_conversation(user.id, conversation_id):
            return

        await self.manager.broadcast(conversation_room(conversation_id), {
            "type": "user-typing",
            "user_id": user.id,
            "user_name": event.get("user_name") or user.name,
            "is_typing": bool(event.get("is_typing")),
        }, exclude=websocket)

    async def mark_read(self, websocket: WebSocket, user: ChatUser, event: dict[str, Any]) -> None:
        conversation_id = event.get("conversation_id")
        message_id = event.get("message_id")
        if not conversation_id or not message_id:
            return
        if not ChatService.can_access_conversation(user.id, conversation_id):
            return

        try:
            receipt = ChatService.mark_read(user.id, message_id, conversation_id)
        except (MarketplaceException, SupabaseClientError) as e:
            logger.error(f"Failed to mark message {message_id} read: {e}")
            return

        await self.manager.broadcast(conversation_room(conversation_id), {
            "type": "message-read",
            "message_id": message_id,
            "read_by": user.id,
            "read_at": receipt["read_at"],
        }, exclude=websocket)

    async def disconnected(self, websocket: WebSocket, user: ChatUser) -> None:
        """Tell peers in every conversation the socket was in that the user left."""
        for room in self.manager.disconnect(websocket):
            if room.startswith("conversation:"):
                await self.manager.broadcast(room, {
                    "type": "user-left",
                    "user_id": user.id,
                    "user_name": user.name,
                })
