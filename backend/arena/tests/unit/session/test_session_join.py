from arena.session.models import SessionState
from arena.tests.helpers.session import join_player, join_players, player_id_of
from arena.tests.mocks import MockConnection


class TestSessionManagerJoin:
    async def test_first_player_gets_empty_roster(self, manager):
        conn = await join_player(manager, "Alice")

        welcome = conn.messages_of_type("welcome")
        assert len(welcome) == 1
        assert welcome[0]["id"] == player_id_of(manager, conn)
        assert welcome[0]["players"] == []
        assert welcome[0]["playersCount"] == 1
        assert welcome[0]["instanceId"] == "srv_test"

    async def test_welcome_lists_everyone_but_self(self, manager):
        alice = await join_player(manager, "Alice")
        bob = await join_player(manager, "Bob")

        welcome = bob.messages_of_type("welcome")[0]
        assert [p["name"] for p in welcome["players"]] == ["Alice"]
        assert welcome["players"][0]["id"] == player_id_of(manager, alice)
        assert welcome["players"][0]["health"] == 100
        assert welcome["playersCount"] == 2

    async def test_join_is_announced_to_others_only(self, manager):
        alice = await join_player(manager, "Alice")
        alice.clear()
        bob = await join_player(manager, "Bob")

        announcements = alice.messages_of_type("playerJoin")
        assert len(announcements) == 1
        assert announcements[0]["id"] == player_id_of(manager, bob)
        assert announcements[0]["name"] == "Bob"
        assert bob.messages_of_type("playerJoin") == []

    async def test_new_player_spawns_in_arena(self, manager):
        conn = await join_player(manager, "Alice")
        player = manager.store.get(player_id_of(manager, conn))

        assert player.health == 100
        assert player.kills == 0
        assert player.deaths == 0
        assert player.y == 2
        assert -25 <= player.x <= 25
        assert -25 <= player.z <= 25

    async def test_join_marks_session_joined(self, manager):
        conn = MockConnection()
        player_id = manager.register_connection(conn)
        assert manager.registry.get(conn.connection_id).state == SessionState.UNJOINED
        assert player_id not in manager.store

        await manager.join(conn, "Alice")

        assert manager.registry.get(conn.connection_id).is_joined
        assert player_id in manager.store
        assert manager.registry.joined_count == 1

    async def test_duplicate_join_is_ignored(self, manager):
        (alice,) = await join_players(manager, "Alice")

        await manager.join(alice, "Mallory")

        assert alice.sent_messages == []
        assert manager.player_count == 1
        assert manager.store.get(player_id_of(manager, alice)).name == "Alice"

    async def test_join_from_unregistered_connection_is_ignored(self, manager):
        conn = MockConnection()
        await manager.join(conn, "Ghost")

        assert conn.sent_messages == []
        assert manager.player_count == 0

    async def test_player_ids_are_unique(self, manager):
        conns = await join_players(manager, "A", "B", "C", "D")
        ids = {player_id_of(manager, c) for c in conns}
        assert len(ids) == 4

    async def test_unjoined_connections_see_joins(self, manager):
        lurker = MockConnection()
        manager.register_connection(lurker)

        alice = await join_player(manager, "Alice")

        announcements = lurker.messages_of_type("playerJoin")
        assert len(announcements) == 1
        assert announcements[0]["id"] == player_id_of(manager, alice)
        assert lurker.messages_of_type("welcome") == []
