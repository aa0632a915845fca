"""Track live connections and deliver messages to them."""

from __future__ import annotations

import contextlib
import itertools
from typing import TYPE_CHECKING

import structlog

from arena.messaging.encoder import encode
from arena.session.models import Session, SessionState

if TYPE_CHECKING:
    from arena.messaging.protocol import ConnectionProtocol
    from arena.messaging.types import WireModel

logger = structlog.get_logger()

# Raised by a peer that went away between iteration and send.
_SEND_ERRORS = (RuntimeError, OSError)


class ConnectionRegistry:
    """Own the connection -> player identifier bindings for one game room.

    Player identifiers come from a per-registry counter, so two live
    connections can never share one. Sends are fire-and-forget: a failed
    delivery is logged at debug level and otherwise ignored; the periodic
    sync broadcast repairs whatever the peer missed.

    Broadcasts reach every open connection, joined or not, so clients still
    in the menu see the arena. Unicast only reaches joined sessions; direct
    sends (send) reach any open connection.
    """

    def __init__(self, id_prefix: str = "p_") -> None:
        self._sessions: dict[str, Session] = {}  # connection_id -> Session
        self._player_index: dict[str, str] = {}  # player_id -> connection_id
        self._id_prefix = id_prefix
        self._counter = itertools.count(1)

    def __len__(self) -> int:
        return len(self._sessions)

    def register(self, connection: ConnectionProtocol) -> str:
        """Allocate a fresh player identifier, bind it to the connection and return it."""
        if connection.connection_id in self._sessions:
            raise ValueError(f"connection {connection.connection_id} is already registered")
        player_id = f"{self._id_prefix}{next(self._counter)}"
        self._sessions[connection.connection_id] = Session(connection=connection, player_id=player_id)
        self._player_index[player_id] = connection.connection_id
        return player_id

    def unregister(self, connection_id: str) -> Session | None:
        """Remove the binding for a connection and return its session, if it had one."""
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return None
        self._player_index.pop(session.player_id, None)
        session.state = SessionState.DISCONNECTED
        return session

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def find_player(self, player_id: str) -> Session | None:
        """Return the joined session bound to a player identifier, or None."""
        connection_id = self._player_index.get(player_id)
        if connection_id is None:
            return None
        session = self._sessions.get(connection_id)
        if session is None or not session.is_joined:
            return None
        return session

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    @property
    def joined_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_joined)

    # --- liveness ---

    def mark_alive(self, connection_id: str) -> None:
        session = self._sessions.get(connection_id)
        if session is not None:
            session.alive = True

    def mark_dead(self, connection_id: str) -> None:
        session = self._sessions.get(connection_id)
        if session is not None:
            session.alive = False

    def is_alive(self, connection_id: str) -> bool:
        session = self._sessions.get(connection_id)
        return session is not None and session.alive

    async def evict(self, connection_id: str, code: int = 1000, reason: str = "") -> Session | None:
        """Forcibly close a connection and drop its binding. Return the removed session."""
        session = self.unregister(connection_id)
        if session is None:
            return None
        with contextlib.suppress(*_SEND_ERRORS):
            await session.connection.close(code=code, reason=reason)
        return session

    # --- delivery ---

    async def _deliver(self, connection: ConnectionProtocol, payload: str) -> bool:
        if not connection.is_open:
            return False
        try:
            await connection.send_text(payload)
        except _SEND_ERRORS as e:
            logger.debug("send failed", connection_id=connection.connection_id, error=str(e))
            return False
        return True

    async def send(self, connection: ConnectionProtocol, message: WireModel) -> bool:
        """Send to one connection regardless of join state. Return True if delivered."""
        return await self._deliver(connection, encode(message.to_wire()))

    async def unicast(self, player_id: str, message: WireModel) -> bool:
        """Send to the connection bound to player_id. Silently skip absent or closed peers."""
        session = self.find_player(player_id)
        if session is None:
            return False
        return await self._deliver(session.connection, encode(message.to_wire()))

    async def broadcast(self, message: WireModel, exclude_player_id: str | None = None) -> int:
        """Send to every open connection except the excluded player. Return the delivery count.

        Iterate over a snapshot so a disconnect while we await a send cannot
        mutate the dict under us.
        """
        payload = encode(message.to_wire())
        sent = 0
        for session in list(self._sessions.values()):
            if session.player_id == exclude_player_id:
                continue
            if await self._deliver(session.connection, payload):
                sent += 1
        return sent

    async def broadcast_all(self, message: WireModel) -> int:
        return await self.broadcast(message)
