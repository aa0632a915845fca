from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from arena.logic import combat
from arena.logic.weapons import DEFAULT_WEAPON, get_weapon
from arena.messaging.types import (
    BulletFiredMessage,
    ChatRelayMessage,
    DamageTakenMessage,
    KillMessage,
    PlayerJoinMessage,
    PlayerLeaveMessage,
    PlayerMovedMessage,
    PlayerState,
    PongMessage,
    RespawnMessage,
    SyncMessage,
    WelcomeMessage,
)
from arena.session.models import SessionState
from arena.session.registry import ConnectionRegistry
from arena.session.respawn import RESPAWN_DELAY_SECONDS, RespawnScheduler
from arena.session.store import PlayerStore

if TYPE_CHECKING:
    from arena.messaging.protocol import ConnectionProtocol
    from arena.session.models import Player, Session

logger = structlog.get_logger()


class SessionManager:
    """Drive the per-connection lifecycle and the gameplay state transitions of one room.

    Every public coroutine runs under a single room lock, so handlers (and the
    respawn callback) see and leave the player store in a consistent state even
    though they await network sends. Gameplay handlers are no-ops unless the
    sending connection is JOINED.
    """

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        store: PlayerStore | None = None,
        *,
        respawn_delay_seconds: float = RESPAWN_DELAY_SECONDS,
        instance_id: str = "",
    ) -> None:
        self._registry = registry or ConnectionRegistry()
        self._store = store or PlayerStore()
        self._respawns = RespawnScheduler(self._respawn_player, delay_seconds=respawn_delay_seconds)
        self._lock = asyncio.Lock()
        self._instance_id = instance_id

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def store(self) -> PlayerStore:
        return self._store

    @property
    def player_count(self) -> int:
        return len(self._store)

    @property
    def connection_count(self) -> int:
        return len(self._registry)

    def register_connection(self, connection: ConnectionProtocol) -> str:
        player_id = self._registry.register(connection)
        logger.info("connection registered", connection_id=connection.connection_id, player_id=player_id)
        return player_id

    def mark_alive(self, connection: ConnectionProtocol) -> None:
        self._registry.mark_alive(connection.connection_id)

    def _joined(self, connection: ConnectionProtocol) -> tuple[Session, Player] | None:
        session = self._registry.get(connection.connection_id)
        if session is None or not session.is_joined:
            return None
        player = self._store.get(session.player_id)
        if player is None:
            return None
        return session, player

    # --- lifecycle ---

    async def join(self, connection: ConnectionProtocol, name: str) -> None:
        async with self._lock:
            session = self._registry.get(connection.connection_id)
            if session is None:
                return
            if session.state != SessionState.UNJOINED:
                logger.warning("duplicate join ignored", player_id=session.player_id)
                return

            player = self._store.create(session.player_id, name)
            session.state = SessionState.JOINED
            structlog.contextvars.bind_contextvars(player_id=player.id)
            logger.info("player joined", name=player.name, players=len(self._store))

            await self._registry.send(
                connection,
                WelcomeMessage(
                    id=player.id,
                    instance_id=self._instance_id,
                    players_count=len(self._store),
                    players=self._store.snapshot(exclude_player_id=player.id),
                ),
            )
            notified = await self._registry.broadcast(
                PlayerJoinMessage(id=player.id, name=player.name, x=player.x, y=player.y, z=player.z),
                exclude_player_id=player.id,
            )
            logger.debug("join announced", notified=notified)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Tear down a closed connection. Safe to call more than once."""
        async with self._lock:
            session = self._registry.unregister(connection.connection_id)
            if session is not None:
                await self._depart(session)

    async def evict(self, connection_id: str, reason: str = "heartbeat_timeout") -> None:
        """Force-close an unresponsive connection and run the normal departure path."""
        async with self._lock:
            session = await self._registry.evict(connection_id, code=1000, reason=reason)
            if session is None:
                return
            logger.info("connection evicted", connection_id=connection_id, player_id=session.player_id, reason=reason)
            await self._depart(session)

    async def _depart(self, session: Session) -> None:
        """Remove an already-unbound session's player and tell everyone else."""
        self._respawns.cancel(session.player_id)
        player = self._store.remove(session.player_id)
        if player is None:
            return
        logger.info("player left", player_id=player.id, name=player.name, players=len(self._store))
        await self._registry.broadcast(PlayerLeaveMessage(id=player.id, name=player.name))

    # --- gameplay ---

    async def update_position(self, connection: ConnectionProtocol, x: float, y: float, z: float, rot_y: float) -> None:
        async with self._lock:
            joined = self._joined(connection)
            if joined is None:
                return
            _, player = joined
            player.move_to(x, y, z, rot_y)
            await self._registry.broadcast(
                PlayerMovedMessage(id=player.id, x=x, y=y, z=z, rot_y=rot_y),
                exclude_player_id=player.id,
            )

    async def fire_bullet(
        self,
        connection: ConnectionProtocol,
        origin: Any,  # noqa: ANN401
        direction: Any,  # noqa: ANN401
        weapon_name: str | None,
    ) -> None:
        async with self._lock:
            joined = self._joined(connection)
            if joined is None:
                return
            _, player = joined
            weapon = get_weapon(weapon_name)
            # over-rate shots are dropped without a reply so cheaters get no feedback
            if not combat.accept_shot(player, weapon):
                logger.debug("shot rejected by fire rate", player_id=player.id, weapon=weapon.name)
                return
            await self._registry.broadcast(
                BulletFiredMessage(owner=player.id, origin=origin, direction=direction, weapon=weapon.name),
                exclude_player_id=player.id,
            )

    async def apply_hit(
        self,
        connection: ConnectionProtocol,
        target_id: str,
        damage: float,
        weapon_name: str | None,
    ) -> None:
        async with self._lock:
            joined = self._joined(connection)
            if joined is None:
                return
            _, attacker = joined
            target_session = self._registry.find_player(target_id)
            target = self._store.get(target_id) if target_session is not None else None
            if target is None or target.id == attacker.id:
                return
            if target.is_dead:
                # already awaiting respawn; counting this hit would score a second kill
                return

            result = combat.apply_hit(attacker, target, damage)
            logger.info(
                "player hit",
                attacker=attacker.name,
                target=target.name,
                damage=result.damage,
                health=result.remaining_health,
            )
            await self._registry.unicast(
                target.id,
                DamageTakenMessage(damage=result.damage, attacker=attacker.name),
            )
            if not result.killed:
                return

            logger.info("player killed", killer=attacker.name, victim=target.name)
            await self._registry.broadcast_all(
                KillMessage(
                    killer=attacker.name,
                    killer_id=attacker.id,
                    victim=target.name,
                    victim_id=target.id,
                    weapon=weapon_name or DEFAULT_WEAPON,
                ),
            )
            self._respawns.schedule(target.id)

    async def _respawn_player(self, player_id: str) -> None:
        async with self._lock:
            player = self._store.get(player_id)
            if player is None:
                logger.debug("stale respawn skipped", player_id=player_id)
                return
            combat.respawn(player)
            logger.info("player respawned", player_id=player.id, name=player.name)
            await self._registry.unicast(player.id, RespawnMessage(x=player.x, y=player.y, z=player.z))

    async def send_chat(self, connection: ConnectionProtocol, text: str) -> None:
        if not text:
            return
        async with self._lock:
            joined = self._joined(connection)
            if joined is None:
                return
            _, player = joined
            logger.debug("chat", name=player.name, text=text)
            await self._registry.broadcast(
                ChatRelayMessage(name=player.name, message=text),
                exclude_player_id=player.id,
            )

    async def handle_ping(self, connection: ConnectionProtocol, client_time: Any) -> None:  # noqa: ANN401
        # answered in any join state and straight to the sender, never broadcast
        await self._registry.send(connection, PongMessage(time=client_time))

    # --- reconciliation ---

    def snapshot(self) -> list[PlayerState]:
        return self._store.snapshot()

    async def broadcast_sync(self) -> int:
        """Send the full roster to every open connection, joined or not. Return the delivery count."""
        async with self._lock:
            if not len(self._store):
                return 0
            return await self._registry.broadcast_all(SyncMessage(players=self._store.snapshot()))

    def shutdown(self) -> None:
        self._respawns.cancel_all()
