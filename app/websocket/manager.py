# =============================================================================
# app/websocket/manager.py - WebSocket Connection Manager
# =============================================================================
# Manages WebSocket connections grouped into rooms and handles broadcasting.
#
# A socket can be in several rooms at once: its private "user:<id>" room
# and at most one "conversation:<id>" room at a time.
#
# Usage:
#   from app.websocket import websocket_manager
#
#   # Accept a client into its private room
#   await websocket_manager.connect("user:123", websocket)
#
#   # Broadcast to everyone in a conversation except the sender
#   await websocket_manager.broadcast("conversation:42", {...}, exclude=websocket)
#
#   # Drop the client from every room
#   websocket_manager.disconnect(websocket)
# =============================================================================

import logging
from typing import Any, Dict, Iterable, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages WebSocket connections organized by room.

    Each room can have multiple connected clients (e.g., both participants of
    a conversation, or several browser tabs of one user).
    """

    def __init__(self):
        # room -> set of WebSocket connections
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, room: str, websocket: WebSocket) -> None:
        """
        Accept a new WebSocket connection and place it in a room.
        """
        await websocket.accept()
        self.join(room, websocket)

        logger.info(
            f"WebSocket connected to {room}. "
            f"Total connections: {self.get_connection_count()}"
        )

    def join(self, room: str, websocket: WebSocket) -> None:
        self.rooms.setdefault(room, set()).add(websocket)

    def leave(self, room: str, websocket: WebSocket) -> None:
        if room in self.rooms:
            self.rooms[room].discard(websocket)

            # Clean up empty rooms
            if not self.rooms[room]:
                del self.rooms[room]

    def leave_all(self, websocket: WebSocket, keep: Iterable[str] = ()) -> list[str]:
        """
        Remove a socket from every room except those in `keep`.

        Returns:
            list[str]: Rooms the socket left
        """
        keep = set(keep)
        left = [room for room in self.rooms_of(websocket) if room not in keep]
        for room in left:
            self.leave(room, websocket)
        return left

    def disconnect(self, websocket: WebSocket) -> list[str]:
        """
        Remove a WebSocket connection from tracking.

        Returns:
            list[str]: Rooms the socket was in
        """
        rooms = self.leave_all(websocket)
        logger.info(
            f"WebSocket disconnected from {len(rooms)} rooms. "
            f"Total connections: {self.get_connection_count()}"
        )
        return rooms

    def rooms_of(self, websocket: WebSocket) -> list[str]:
        return [room for room, members in self.rooms.items() if websocket in members]

    async def broadcast(
        self,
        room: str,
        message: dict[str, Any],
        exclude: WebSocket | None = None,
    ) -> int:
        """
        Broadcast a message to all connections in a room.

        Args:
            room: The room to broadcast to
            message: The message dict to send (will be JSON encoded)
            exclude: A connection to skip, usually the sender

        Returns:
            int: Number of clients the message was sent to
        """
        if room not in self.rooms:
            logger.debug(f"No connections in {room}, skipping broadcast")
            return 0

        dead_connections: Set[WebSocket] = set()
        sent_count = 0

        for websocket in list(self.rooms[room]):
            if websocket is exclude:
                continue
            try:
                await websocket.send_json(message)
                sent_count += 1
            except Exception as e:
                logger.warning(f"Failed to send to WebSocket: {e}")
                dead_connections.add(websocket)

        # Clean up any dead connections
        for ws in dead_connections:
            self.leave(room, ws)

        if dead_connections:
            logger.info(f"Cleaned up {len(dead_connections)} dead connections")

        logger.debug(
            f"Broadcast to {room}: "
            f"type={message.get('type')}, sent to {sent_count} clients"
        )

        return sent_count

    def get_connection_count(self, room: str | None = None) -> int:
        """
        Get the number of active connections.

        Args:
            room: If provided, count for that room. Otherwise distinct sockets overall.
        """
        if room:
            return len(self.rooms.get(room, set()))
        return len(set().union(*self.rooms.values())) if self.rooms else 0

    def get_active_rooms(self) -> list[str]:
        """
        Get list of rooms with active connections.
        """
        return list(self.rooms.keys())


# Global singleton instance
websocket_manager = ConnectionManager()
