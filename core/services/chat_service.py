# =============================================================================
# core/services/chat_service.py - Conversations & Messages
# =============================================================================
# Persistence side of the client <-> braider chat. Used by both the REST
# routes and the realtime relay (app/websocket/chat.py), so every access
# check lives here.
#
# Conversations are created by the get_or_create_conversation RPC, which
# returns the existing conversation id for a pair of users if there is one.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError, OwnershipError, ValidationFailedError
from core.models.chat import MessageType
from core.roles import UserRole
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import to_iso, utc_now

logger = logging.getLogger(__name__)


def _public_user(user_id: str) -> dict[str, Any]:
    row = SupabaseClient.fetch_one("users", columns="id, name, email, avatar_url", id=user_id) or {}
    return {
        "id": row.get("id") or user_id,
        "name": row.get("name") or "Usuário",
        "email": row.get("email") or "",
        "avatar": row.get("avatar_url"),
    }


class ChatService:
    """
    Service for conversations and messages.
    """

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @staticmethod
    def _get_conversation(conversation_id: str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(
            "conversations",
            columns="id, participant_1_id, participant_2_id, status",
            id=conversation_id,
        )

    @staticmethod
    def _is_participant(conversation: dict[str, Any], user_id: str) -> bool:
        return user_id in (str(conversation.get("participant_1_id")), str(conversation.get("participant_2_id")))

    @staticmethod
    def can_access_conversation(user_id: UUID | str, conversation_id: str) -> bool:
        """True if the user is one of the two participants."""
        try:
            conversation = ChatService._get_conversation(conversation_id)
        except SupabaseClientError as e:
            logger.error(f"Error checking conversation access: {e}")
            return False
        return bool(conversation) and ChatService._is_participant(conversation, str(user_id))

    @staticmethod
    def _require_participant(user_id: str, conversation_id: str) -> dict[str, Any]:
        conversation = ChatService._get_conversation(conversation_id)
        if not conversation:
            raise NotFoundError("conversation", conversation_id)
        if not ChatService._is_participant(conversation, user_id):
            raise OwnershipError(
                "Access denied to conversation",
                details={"violation": "conversation_access_denied", "conversation_id": conversation_id},
            )
        return conversation

    # -------------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------------

    @staticmethod
    def list_conversations(user_id: UUID | str) -> list[dict[str, Any]]:
        """
        List the user's conversations with the other participant and unread count.

        Most recent activity first.
        """
        user_id = str(user_id)

        as_first = SupabaseClient.fetch_many("conversations", participant_1_id=user_id)
        as_second = SupabaseClient.fetch_many("conversations", participant_2_id=user_id)
        conversations = {c["id"]: c for c in as_first + as_second}.values()

        result = []
        for conv in conversations:
            is_first = str(conv.get("participant_1_id")) == user_id
            other_id = str(conv["participant_2_id"] if is_first else conv["participant_1_id"])

            unread = [
                m for m in SupabaseClient.fetch_many(
                    "messages",
                    columns="id, sender_id",
                    conversation_id=conv["id"],
                    is_read=False,
                )
                if str(m.get("sender_id")) != user_id
            ]

            result.append({
                "id": conv["id"],
                "status": conv.get("status") or "active",
                "participant": _public_user(other_id),
                "last_message": {
                    "content": conv.get("last_message_content") or "",
                    "timestamp": conv.get("last_message_timestamp"),
                    "sender": "current" if str(conv.get("last_message_sender_id")) == user_id else "other",
                },
                "unread_count": len(unread),
                "created_at": conv.get("created_at"),
                "updated_at": conv.get("updated_at"),
            })

        result.sort(
            key=lambda c: str(c["last_message"]["timestamp"] or c["updated_at"] or c["created_at"] or ""),
            reverse=True,
        )
        return result

    @staticmethod
    def create_conversation(
        user_id: UUID | str,
        participant_id: str,
        initial_message: str | None = None,
    ) -> str:
        """
        Open (or reuse) a conversation with a braider.

        participant_id may be a braider id or a user id.

        Returns:
            The conversation id

        Raises:
            NotFoundError: If the target user doesn't exist
            ValidationFailedError: If the target isn't a braider
        """
        user_id = str(user_id)

        target_id = participant_id
        braider = SupabaseClient.fetch_one("braiders", columns="id, user_id", id=participant_id)
        if braider and braider.get("user_id"):
            target_id = str(braider["user_id"])

        target = SupabaseClient.fetch_one("users", columns="id, name, role", id=target_id)
        if not target:
            raise NotFoundError("user", target_id)
        if target.get("role") != UserRole.BRAIDER.value:
            raise ValidationFailedError("Conversations can only be started with a braider", field="participant_id")

        conversation_id = SupabaseClient.rpc(
            "get_or_create_conversation",
            {"p_user1_id": user_id, "p_user2_id": target_id},
        )
        logger.info(f"Conversation {conversation_id} between {user_id} and {target_id}")

        if initial_message and initial_message.strip():
            try:
                SupabaseClient.insert_one("messages", {
                    "conversation_id": conversation_id,
                    "sender_id": user_id,
                    "content": initial_message.strip(),
                    "message_type": MessageType.TEXT.value,
                    "is_delivered": True,
                })
            except SupabaseClientError as e:
                # The conversation exists; the first message can be resent
                logger.error(f"Failed to send initial message: {e}")

        return str(conversation_id)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    @staticmethod
    def format_message(message: dict[str, Any], sender: dict[str, Any] | None = None) -> dict[str, Any]:
        """Shape a messages row for clients."""
        return {
            "id": message["id"],
            "conversation_id": message.get("conversation_id"),
            "sender_id": message.get("sender_id"),
            "content": message.get("content"),
            "message_type": message.get("message_type", MessageType.TEXT.value),
            "attachments": message.get("attachments") or [],
            "metadata": message.get("metadata") or {},
            "reply_to_message_id": message.get("reply_to_message_id"),
            "is_read": bool(message.get("is_read")),
            "is_delivered": bool(message.get("is_delivered")),
            "created_at": message.get("created_at"),
            "sender": sender,
        }

    @staticmethod
    def list_messages(
        user_id: UUID | str,
        conversation_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Page through a conversation, oldest first, and mark it read.

        Raises:
            NotFoundError: If the conversation doesn't exist
            OwnershipError: If the user isn't a participant
        """
        user_id = str(user_id)
        ChatService._require_participant(user_id, conversation_id)

        rows = SupabaseClient.fetch_many(
            "messages",
            order_by="created_at",
            limit=limit,
            offset=offset,
            conversation_id=conversation_id,
            is_deleted=False,
        )

        senders: dict[str, dict[str, Any]] = {}
        messages = []
        for row in rows:
            sender_id = str(row.get("sender_id"))
            if sender_id not in senders:
                senders[sender_id] = _public_user(sender_id)
            messages.append(ChatService.format_message(row, senders[sender_id]))

        try:
            SupabaseClient.rpc(
                "mark_messages_as_read",
                {"p_conversation_id": conversation_id, "p_user_id": user_id},
            )
        except SupabaseClientError as e:
            logger.warning(f"Failed to mark messages as read: {e}")

        return {
            "messages": messages,
            "pagination": {"limit": limit, "offset": offset, "has_more": len(messages) == limit},
        }

    @staticmethod
    def send_message(
        user_id: UUID | str,
        conversation_id: str,
        content: str,
        message_type: MessageType | str = MessageType.TEXT,
        attachments: list[dict[str, Any]] | None = None,
        metadata: dict[str, Any] | None = None,
        reply_to_message_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Persist a message from a participant.

        Raises:
            ValidationFailedError: If the content is blank
            NotFoundError / OwnershipError: If the user can't post here
        """
        user_id = str(user_id)
        text = (content or "").strip()
        if not text:
            raise ValidationFailedError("Message content is required", field="content")

        ChatService._require_participant(user_id, conversation_id)

        row = SupabaseClient.insert_one("messages", {
            "conversation_id": conversation_id,
            "sender_id": user_id,
            "content": text,
            "message_type": MessageType(message_type).value,
            "attachments": attachments or [],
            "metadata": metadata or {},
            "reply_to_message_id": reply_to_message_id,
            "is_delivered": True,
        })
        return ChatService.format_message(row, _public_user(user_id))

    @staticmethod
    def mark_read(user_id: UUID | str, message_id: str, conversation_id: str) -> dict[str, Any]:
        """Mark a single message read for a participant."""
        ChatService._require_participant(str(user_id), conversation_id)

        read_at = to_iso(utc_now())
        rows = SupabaseClient.update_where(
            "messages",
            {"is_read": True, "read_at": read_at},
            id=message_id,
            conversation_id=conversation_id,
        )
        if not rows:
            raise NotFoundError("message", message_id)
        return {"message_id": message_id, "read_at": read_at}

    @staticmethod
    def delete_message(user_id: UUID | str, message_id: str) -> None:
        """Soft-delete a message; only its sender may do so."""
        message = SupabaseClient.fetch_one("messages", columns="id, sender_id", id=message_id)
        if not message:
            raise NotFoundError("message", message_id)
        if str(message.get("sender_id")) != str(user_id):
            raise OwnershipError("You can only delete your own messages", details={"message_id": message_id})

        SupabaseClient.update_where(
            "messages",
            {"is_deleted": True, "deleted_at": to_iso(utc_now())},
            id=message_id,
        )
