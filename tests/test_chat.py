# =============================================================================
# tests/test_chat.py - Chat Service & Realtime Tests
# =============================================================================
# Tests for ChatService, the room-based ConnectionManager and the chat
# event handler. Async code runs through asyncio.run with fake sockets.
# =============================================================================

import asyncio

import pytest

from app.exceptions import NotFoundError, OwnershipError, ValidationFailedError
from app.websocket.chat import ChatEventHandler, ChatUser
from app.websocket.manager import ConnectionManager
from core.services.chat_service import ChatService

CLIENT = "11111111-1111-1111-1111-111111111111"
BRAIDER = "22222222-2222-2222-2222-222222222222"
STRANGER = "44444444-4444-4444-4444-444444444444"


class FakeWebSocket:
    """Records what the server sends."""

    def __init__(self, broken: bool = False):
        self.sent: list[dict] = []
        self.accepted = False
        self.broken = broken

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


@pytest.fixture
def chat(db):
    db.seed(
        "users",
        {"id": CLIENT, "name": "Maria", "email": "maria@example.com", "role": "customer"},
        {"id": BRAIDER, "name": "Ana", "email": "ana@example.com", "role": "braider"},
        {"id": STRANGER, "name": "Rui", "email": "rui@example.com", "role": "customer"},
    )
    db.seed("braiders", {"id": "braider-1", "user_id": BRAIDER})
    db.seed("conversations", {
        "id": "conv-1",
        "participant_1_id": CLIENT,
        "participant_2_id": BRAIDER,
        "status": "active",
        "last_message_content": "Olá",
        "last_message_timestamp": "2025-03-10T09:00:00Z",
        "last_message_sender_id": BRAIDER,
    })
    db.seed(
        "messages",
        {"id": "m1", "conversation_id": "conv-1", "sender_id": BRAIDER, "content": "Olá",
         "is_read": False, "is_deleted": False, "created_at": "2025-03-10T09:00:00Z"},
        {"id": "m2", "conversation_id": "conv-1", "sender_id": CLIENT, "content": "Bom dia",
         "is_read": False, "is_deleted": False, "created_at": "2025-03-10T09:05:00Z"},
        {"id": "m3", "conversation_id": "conv-1", "sender_id": CLIENT, "content": "apagada",
         "is_read": False, "is_deleted": True, "created_at": "2025-03-10T09:06:00Z"},
    )
    db.rpc_handlers["mark_messages_as_read"] = lambda params: None
    return db


# =============================================================================
# ChatService
# =============================================================================

class TestConversations:
    """Tests for listing and creating conversations."""

    def test_list_shows_other_participant_and_unread(self, chat):
        conversations = ChatService.list_conversations(CLIENT)

        assert len(conversations) == 1
        conv = conversations[0]
        assert conv["participant"]["name"] == "Ana"
        # Only the braider's message counts as unread for the client
        assert conv["unread_count"] == 1
        assert conv["last_message"]["sender"] == "other"

    def test_create_with_braider_id_resolves_user(self, chat):
        chat.rpc_handlers["get_or_create_conversation"] = lambda params: "conv-2"

        conversation_id = ChatService.create_conversation(CLIENT, "braider-1", initial_message="  Olá!  ")

        assert conversation_id == "conv-2"
        assert chat.rpc_calls[-1] == ("get_or_create_conversation", {"p_user1_id": CLIENT, "p_user2_id": BRAIDER})
        assert chat.rows("messages", conversation_id="conv-2")[0]["content"] == "Olá!"

    def test_create_with_non_braider(self, chat):
        with pytest.raises(ValidationFailedError):
            ChatService.create_conversation(CLIENT, STRANGER)

    def test_create_with_unknown_user(self, chat):
        with pytest.raises(NotFoundError):
            ChatService.create_conversation(CLIENT, "ghost")

    def test_access(self, chat):
        assert ChatService.can_access_conversation(CLIENT, "conv-1")
        assert not ChatService.can_access_conversation(STRANGER, "conv-1")
        assert not ChatService.can_access_conversation(CLIENT, "missing")

    def test_access_on_database_error_is_denied(self, chat):
        chat.failing_tables.add("conversations")
        assert not ChatService.can_access_conversation(CLIENT, "conv-1")


class TestMessages:
    """Tests for message operations."""

    def test_list_skips_deleted_and_marks_read(self, chat):
        result = ChatService.list_messages(CLIENT, "conv-1")

        assert [m["id"] for m in result["messages"]] == ["m1", "m2"]
        assert result["messages"][0]["sender"]["name"] == "Ana"
        assert result["pagination"]["has_more"] is False
        assert ("mark_messages_as_read", {"p_conversation_id": "conv-1", "p_user_id": CLIENT}) in chat.rpc_calls

    def test_list_survives_mark_read_failure(self, chat):
        del chat.rpc_handlers["mark_messages_as_read"]

        result = ChatService.list_messages(CLIENT, "conv-1", limit=1)

        assert result["pagination"]["has_more"] is True

    def test_stranger_cannot_read(self, chat):
        with pytest.raises(OwnershipError):
            ChatService.list_messages(STRANGER, "conv-1")

    def test_send_trims_content(self, chat):
        message = ChatService.send_message(CLIENT, "conv-1", "  Até amanhã  ")

        assert message["content"] == "Até amanhã"
        assert message["is_delivered"] is True
        assert message["sender"]["name"] == "Maria"

    def test_blank_message(self, chat):
        with pytest.raises(ValidationFailedError):
            ChatService.send_message(CLIENT, "conv-1", "   ")

    def test_mark_read(self, chat):
        receipt = ChatService.mark_read(CLIENT, "m1", "conv-1")

        assert receipt["message_id"] == "m1"
        assert chat.rows("messages", id="m1")[0]["is_read"] is True

    def test_mark_read_wrong_conversation(self, chat):
        chat.seed("conversations", {"id": "conv-x", "participant_1_id": CLIENT, "participant_2_id": STRANGER})

        with pytest.raises(NotFoundError):
            ChatService.mark_read(CLIENT, "m1", "conv-x")

    def test_only_sender_deletes(self, chat):
        with pytest.raises(OwnershipError):
            ChatService.delete_message(CLIENT, "m1")

        ChatService.delete_message(BRAIDER, "m1")
        assert chat.rows("messages", id="m1")[0]["is_deleted"] is True


# =============================================================================
# ConnectionManager
# =============================================================================

class TestConnectionManager:
    """Tests for room membership and broadcasting."""

    def test_connect_accepts_and_joins(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()

        asyncio.run(manager.connect("user:1", ws))

        assert ws.accepted
        assert manager.get_connection_count("user:1") == 1

    def test_broadcast_excludes_sender_and_drops_dead(self):
        manager = ConnectionManager()
        sender, peer, dead = FakeWebSocket(), FakeWebSocket(), FakeWebSocket(broken=True)
        for ws in (sender, peer, dead):
            manager.join("conversation:1", ws)

        sent = asyncio.run(manager.broadcast("conversation:1", {"type": "ping"}, exclude=sender))

        assert sent == 1
        assert peer.types() == ["ping"]
        assert sender.sent == []
        assert manager.get_connection_count("conversation:1") == 2

    def test_leave_all_keeps_private_room(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        manager.join("user:1", ws)
        manager.join("conversation:1", ws)

        left = manager.leave_all(ws, keep=["user:1"])

        assert left == ["conversation:1"]
        assert manager.get_active_rooms() == ["user:1"]

    def test_distinct_connection_count(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        manager.join("user:1", ws)
        manager.join("conversation:1", ws)

        assert manager.get_connection_count() == 1


# =============================================================================
# ChatEventHandler
# =============================================================================

class TestChatEventHandler:
    """Tests for realtime chat events."""

    @pytest.fixture
    def sockets(self, chat):
        manager = ConnectionManager()
        handler = ChatEventHandler(manager)
        client_ws, braider_ws = FakeWebSocket(), FakeWebSocket()
        client = ChatUser(id=CLIENT, email="maria@example.com", name="Maria")
        braider = ChatUser(id=BRAIDER, email="ana@example.com", name="Ana")
        manager.join(f"user:{CLIENT}", client_ws)
        manager.join(f"user:{BRAIDER}", braider_ws)
        return manager, handler, (client_ws, client), (braider_ws, braider)

    def _join_both(self, handler, client, braider):
        asyncio.run(handler.handle(braider[0], braider[1], {"type": "join-conversation", "conversation_id": "conv-1"}))
        asyncio.run(handler.handle(client[0], client[1], {"type": "join-conversation", "conversation_id": "conv-1"}))

    def test_join_notifies_peers(self, sockets):
        manager, handler, client, braider = sockets

        self._join_both(handler, client, braider)

        assert braider[0].types() == ["user-joined"]
        assert braider[0].sent[0]["user_name"] == "Maria"
        assert client[0].sent == []
        assert set(manager.rooms_of(client[0])) == {f"user:{CLIENT}", "conversation:conv-1"}

    def test_join_denied(self, sockets):
        _, handler, _, _ = sockets
        stranger_ws = FakeWebSocket()

        asyncio.run(handler.handle(
            stranger_ws, ChatUser(id=STRANGER), {"type": "join-conversation", "conversation_id": "conv-1"}
        ))

        assert stranger_ws.sent == [{"type": "error", "message": "Access denied to conversation"}]

    def test_send_message_confirms_and_relays(self, sockets):
        _, handler, client, braider = sockets
        self._join_both(handler, client, braider)

        asyncio.run(handler.handle(client[0], client[1], {
            "type": "send-message",
            "conversation_id": "conv-1",
            "content": "Está confirmado?",
            "temp_id": "t1",
        }))

        confirmation = client[0].sent[-1]
        assert confirmation["type"] == "message-sent"
        assert confirmation["temp_id"] == "t1"
        assert braider[0].sent[-1]["type"] == "new-message"
        assert braider[0].sent[-1]["message"]["content"] == "Está confirmado?"

    def test_send_blank_message_errors(self, sockets):
        _, handler, client, braider = sockets
        self._join_both(handler, client, braider)

        asyncio.run(handler.handle(client[0], client[1], {
            "type": "send-message", "conversation_id": "conv-1", "content": " ", "temp_id": "t2",
        }))

        assert client[0].sent[-1] == {"type": "message-error", "temp_id": "t2", "message": "Failed to create message"}

    def test_typing_and_mark_read(self, sockets):
        _, handler, client, braider = sockets
        self._join_both(handler, client, braider)

        asyncio.run(handler.handle(client[0], client[1], {"type": "typing", "conversation_id": "conv-1", "is_typing": True}))
        asyncio.run(handler.handle(client[0], client[1], {"type": "mark-read", "conversation_id": "conv-1", "message_id": "m1"}))

        assert braider[0].types()[-2:] == ["user-typing", "message-read"]
        assert braider[0].sent[-1]["read_by"] == CLIENT

    def test_unknown_event(self, sockets):
        _, handler, client, _ = sockets

        asyncio.run(handler.handle(client[0], client[1], {"type": "dance"}))

        assert client[0].sent[-1]["type"] == "error"

    def test_disconnect_announces_leave(self, sockets):
        manager, handler, client, braider = sockets
        self._join_both(handler, client, braider)

        asyncio.run(handler.disconnected(client[0], client[1]))

        assert braider[0].sent[-1] == {"type": "user-left", "user_id": CLIENT, "user_name": "Maria"}
        assert manager.rooms_of(client[0]) == []
