import json
import logging

from arena.messaging.router import MessageRouter
from arena.tests.helpers.session import join_player, player_id_of
from arena.tests.mocks import MockConnection


async def _connect(message_router) -> MockConnection:
    conn = MockConnection()
    await message_router.handle_connect(conn)
    return conn


async def _send(message_router, conn: MockConnection, data: dict) -> None:
    await message_router.handle_message(conn, json.dumps(data))


class TestMessageRouter:
    async def test_join_then_welcome(self, message_router, session_manager):
        conn = await _connect(message_router)

        await _send(message_router, conn, {"type": "join", "name": "Alice"})

        welcome = conn.messages_of_type("welcome")
        assert len(welcome) == 1
        assert welcome[0]["id"] == player_id_of(session_manager, conn)

    async def test_join_name_is_normalized(self, message_router, session_manager):
        conn = await _connect(message_router)

        await _send(message_router, conn, {"type": "join", "name": "A" * 40})

        assert session_manager.store.get(player_id_of(session_manager, conn)).name == "A" * 20

    async def test_chat_is_truncated_before_relay(self, message_router, session_manager):
        alice = await _connect(message_router)
        bob = await _connect(message_router)
        await _send(message_router, alice, {"type": "join", "name": "Alice"})
        await _send(message_router, bob, {"type": "join", "name": "Bob"})

        await _send(message_router, alice, {"type": "chat", "message": "x" * 300})

        chat = bob.messages_of_type("chat")
        assert len(chat) == 1
        assert chat[0]["message"] == "x" * 200

    async def test_hit_without_damage_uses_default(self, message_router, session_manager):
        alice = await _connect(message_router)
        bob = await _connect(message_router)
        await _send(message_router, alice, {"type": "join", "name": "Alice"})
        await _send(message_router, bob, {"type": "join", "name": "Bob"})

        await _send(message_router, alice, {"type": "hit", "target": player_id_of(session_manager, bob)})

        assert bob.messages_of_type("hit")[0]["damage"] == 25

    async def test_fractional_damage_is_applied(self, message_router, session_manager):
        alice = await _connect(message_router)
        bob = await _connect(message_router)
        await _send(message_router, alice, {"type": "join", "name": "Alice"})
        await _send(message_router, bob, {"type": "join", "name": "Bob"})
        bob_id = player_id_of(session_manager, bob)

        await _send(message_router, alice, {"type": "hit", "target": bob_id, "damage": 37.5})

        assert bob.messages_of_type("hit") == [{"type": "hit", "target": "local", "damage": 37, "attacker": "Alice"}]
        assert session_manager.store.get(bob_id).health == 63

    async def test_zero_damage_uses_default(self, message_router, session_manager):
        alice = await _connect(message_router)
        bob = await _connect(message_router)
        await _send(message_router, alice, {"type": "join", "name": "Alice"})
        await _send(message_router, bob, {"type": "join", "name": "Bob"})

        await _send(message_router, alice, {"type": "hit", "target": player_id_of(session_manager, bob), "damage": 0})

        assert bob.messages_of_type("hit")[0]["damage"] == 25

    async def test_ping_before_join(self, message_router):
        conn = await _connect(message_router)

        await _send(message_router, conn, {"type": "ping", "time": 42})

        assert conn.sent_messages == [{"type": "pong", "time": 42}]

    async def test_gameplay_before_join_is_ignored(self, message_router, session_manager):
        bob = await join_player(session_manager, "Bob")
        bob.clear()
        conn = await _connect(message_router)

        await _send(message_router, conn, {"type": "position", "x": 1, "y": 2, "z": 3, "rotY": 0})
        await _send(message_router, conn, {"type": "chat", "message": "hi"})

        assert bob.sent_messages == []
        assert conn.sent_messages == []


class TestMessageRouterBadInput:
    async def test_malformed_json_is_dropped(self, message_router, caplog):
        conn = await _connect(message_router)

        with caplog.at_level(logging.WARNING):
            await message_router.handle_message(conn, "{not json")

        assert conn.sent_messages == []
        assert not conn.is_closed
        assert "malformed frame" in caplog.text

    async def test_non_object_is_dropped(self, message_router):
        conn = await _connect(message_router)

        await message_router.handle_message(conn, "[1,2,3]")

        assert conn.sent_messages == []
        assert not conn.is_closed

    async def test_unknown_type_is_ignored(self, message_router, caplog):
        conn = await _connect(message_router)

        with caplog.at_level(logging.WARNING):
            await _send(message_router, conn, {"type": "teleport", "x": 1})

        assert conn.sent_messages == []
        # unknown types are routine for newer clients and only logged at debug
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    async def test_missing_type_is_ignored(self, message_router):
        conn = await _connect(message_router)

        await _send(message_router, conn, {"name": "Alice"})

        assert conn.sent_messages == []

    async def test_invalid_fields_are_dropped(self, message_router, session_manager, caplog):
        conn = await _connect(message_router)
        await _send(message_router, conn, {"type": "join", "name": "Alice"})
        conn.clear()

        with caplog.at_level(logging.WARNING):
            await _send(message_router, conn, {"type": "position", "x": "left", "y": 2, "z": 3, "rotY": 0})

        assert "invalid position message" in caplog.text
        assert conn.sent_messages == []
        assert not conn.is_closed

    async def test_handler_errors_are_contained(self, message_router, session_manager, caplog):
        conn = await _connect(message_router)

        async def boom(*_args):
            raise RuntimeError("handler exploded")

        session_manager.handle_ping = boom
        await _send(message_router, conn, {"type": "ping", "time": 1})

        assert "error handling ping message" in caplog.text
        assert not conn.is_closed

    async def test_any_frame_marks_connection_alive(self, message_router, session_manager):
        conn = await _connect(message_router)
        session_manager.registry.mark_dead(conn.connection_id)

        await message_router.handle_message(conn, "garbage")

        assert session_manager.registry.is_alive(conn.connection_id)

    async def test_oversized_frame_is_dropped(self, session_manager):
        router = MessageRouter(session_manager, max_message_bytes=256)
        conn = MockConnection()
        await router.handle_connect(conn)

        await router.handle_message(conn, json.dumps({"type": "ping", "time": "x" * 500}))

        assert conn.sent_messages == []

    async def test_disconnect_through_router(self, message_router, session_manager):
        alice = await _connect(message_router)
        bob = await _connect(message_router)
        await _send(message_router, alice, {"type": "join", "name": "Alice"})
        await _send(message_router, bob, {"type": "join", "name": "Bob"})

        await message_router.handle_disconnect(bob)

        assert len(alice.messages_of_type("playerLeave")) == 1
        assert session_manager.player_count == 1
