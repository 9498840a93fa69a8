# =============================================================================
# core/models/chat.py - Conversation & Message Schemas
# =============================================================================
# Conversations are always between two users; at least one of them is a
# braider. Messages are soft-deleted, never removed.
# =============================================================================

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """Kinds of chat messages."""
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    BOOKING_REQUEST = "booking_request"
    SYSTEM = "system"


class ConversationCreate(BaseModel):
    """
    Start (or reopen) a conversation.

    participant_id may be a braider id or a user id.
    """
    participant_id: str
    initial_message: str | None = Field(default=None, max_length=5000)


class MessageCreate(BaseModel):
    """A new chat message sent over REST."""
    content: str = Field(..., max_length=5000)
    message_type: MessageType = MessageType.TEXT
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    reply_to_message_id: str | None = None


class MarkReadRequest(BaseModel):
    conversation_id: str
