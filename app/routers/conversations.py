# =============================================================================
# app/routers/conversations.py - Conversation & Message Endpoints
# =============================================================================
# REST side of the chat. Messages sent here are also relayed to the
# conversation's realtime room so connected clients see them immediately.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentUser
from app.websocket.broadcast import publish_new_message
from core.models.chat import ConversationCreate, MarkReadRequest, MessageCreate
from core.services.chat_service import ChatService

router = APIRouter()


@router.get("")
async def list_conversations(user: CurrentUser):
    """
    The current user's conversations, most recent first.
    """
    conversations = ChatService.list_conversations(user.id)
    return {"conversations": conversations, "total": len(conversations)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(payload: ConversationCreate, user: CurrentUser):
    """
    Start a conversation with a braider, or return the existing one.
    """
    conversation_id = ChatService.create_conversation(user.id, payload.participant_id, payload.initial_message)
    return {"success": True, "conversation_id": conversation_id}


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    user: CurrentUser,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """
    Messages in a conversation, oldest first. Marks them read for the caller.
    """
    return ChatService.list_messages(user.id, conversation_id, limit=limit, offset=offset)


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(conversation_id: str, payload: MessageCreate, user: CurrentUser):
    message = ChatService.send_message(
        user.id,
        conversation_id,
        payload.content,
        message_type=payload.message_type,
        attachments=payload.attachments,
        metadata=payload.metadata,
        reply_to_message_id=payload.reply_to_message_id,
    )
    publish_new_message(conversation_id, message)
    return {"success": True, "message": message}


@router.post("/messages/{message_id}/read")
async def mark_message_read(message_id: str, payload: MarkReadRequest, user: CurrentUser):
    return ChatService.mark_read(user.id, message_id, payload.conversation_id)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(message_id: str, user: CurrentUser):
    ChatService.delete_message(user.id, message_id)
