# =============================================================================
# app/websocket/routes.py - WebSocket Routes
# =============================================================================
# WebSocket endpoint for realtime chat and notifications.
#
# Connect: ws://host/ws/chat?token={jwt}
#
# On connect the socket joins its private room (user:<id>), which receives
# notifications published through app/websocket/broadcast.py. Chat events
# are documented in app/websocket/chat.py.
# =============================================================================

import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError

from app.auth.dependencies import user_from_token
from app.websocket.broadcast import user_room
from app.websocket.chat import ChatEventHandler, ChatUser
from app.websocket.manager import websocket_manager
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter()

chat_handler = ChatEventHandler(websocket_manager)


def _chat_user(token: str) -> ChatUser:
    """
    Resolve the socket's user from its token.

    Raises:
        JWTError: If the token is invalid
    """
    auth_user = user_from_token(token)
    name = None
    try:
        row = SupabaseClient.fetch_user(auth_user.id)
        name = (row or {}).get("name")
    except SupabaseClientError as e:
        logger.warning(f"WebSocket: could not load profile of {auth_user.id}: {e}")
    return ChatUser(id=str(auth_user.id), email=auth_user.email, name=name)


@router.websocket("/ws/chat")
async def chat_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="JWT token for authentication"),
):
    """
    WebSocket endpoint for realtime chat.

    Authentication is required via the `token` query parameter.

    Connection URL:
        ws://localhost:8000/ws/chat?token={jwt}

    Example event:
        {"type": "send-message", "conversation_id": "…", "content": "Olá!", "temp_id": "t1"}
    """
    # 1. Verify JWT token
    try:
        user = _chat_user(token)
    except JWTError as e:
        logger.warning(f"WebSocket auth failed: {e}")
        await websocket.close(code=4001, reason="Invalid token")
        return

    # 2. Accept connection into the user's private room
    await websocket_manager.connect(user_room(user.id), websocket)

    try:
        await websocket.send_json({
            "type": "connected",
            "user_id": user.id,
            "message": "Connected to chat",
        })

        while True:
            data = await websocket.receive_text()

            # Handle ping/pong for keepalive
            if data == "ping":
                await websocket.send_text("pong")
                continue

            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            if not isinstance(event, dict):
                await websocket.send_json({"type": "error", "message": "Event must be an object"})
                continue

            await chat_handler.handle(websocket, user, event)

    except WebSocketDisconnect:
        logger.info(f"WebSocket client {user.id} disconnected")
    finally:
        await chat_handler.disconnected(websocket, user)


@router.get("/ws/status")
async def websocket_status():
    """
    Get WebSocket connection statistics.

    Returns:
        dict: Connection counts and active rooms
    """
    rooms = websocket_manager.get_active_rooms()
    return {
        "total_connections": websocket_manager.get_connection_count(),
        "active_rooms": rooms,
        "room_count": len(rooms),
        "conversation_count": sum(1 for r in rooms if r.startswith("conversation:")),
    }
