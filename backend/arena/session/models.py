from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from arena.logic.combat import MAX_HEALTH

if TYPE_CHECKING:
    from arena.messaging.protocol import ConnectionProtocol


class SessionState(StrEnum):
    UNJOINED = "unjoined"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


@dataclass
class Session:
    """Bind one live connection to the player identifier allocated for it.

    Lifecycle:
    - Created on connect in UNJOINED state (player_id already allocated)
    - Moves to JOINED once the client sends a join message
    - Moves to DISCONNECTED when the connection closes or is evicted (terminal)
    """

    connection: ConnectionProtocol
    player_id: str
    state: SessionState = SessionState.UNJOINED
    alive: bool = True  # cleared by each heartbeat round, set again by any inbound frame

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    @property
    def is_joined(self) -> bool:
        return self.state == SessionState.JOINED


@dataclass
class Player:
    """Authoritative server-side state of one joined combatant."""

    id: str
    name: str
    x: float
    y: float
    z: float
    rot_y: float = 0.0
    health: int = MAX_HEALTH
    kills: int = 0
    deaths: int = 0
    last_shot_at: float = 0.0  # time.monotonic() of the last accepted shot, 0 until the first one

    @property
    def is_dead(self) -> bool:
        return self.health <= 0

    def move_to(self, x: float, y: float, z: float, rot_y: float | None = None) -> None:
        self.x = x
        self.y = y
        self.z = z
        if rot_y is not None:
            self.rot_y = rot_y
