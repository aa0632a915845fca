from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from arena.session.models import Player

DEFAULT_PLAYER_NAME = "Player"
MAX_NAME_LENGTH = 20
MAX_CHAT_LENGTH = 200
DEFAULT_HIT_DAMAGE = 25

# Coordinates and yaw are client-authoritative but must at least be finite numbers.
Coordinate = Annotated[float, Field(allow_inf_nan=False)]


class ClientMessageType(StrEnum):
    JOIN = "join"
    POSITION = "position"
    BULLET = "bullet"
    HIT = "hit"
    CHAT = "chat"
    PING = "ping"


class ServerMessageType(StrEnum):
    WELCOME = "welcome"
    PLAYER_JOIN = "playerJoin"
    POSITION = "position"
    BULLET = "bullet"
    HIT = "hit"
    KILL = "kill"
    CHAT = "chat"
    PONG = "pong"
    PLAYER_LEAVE = "playerLeave"
    RESPAWN = "respawn"
    SYNC = "sync"
    HEARTBEAT = "heartbeat"


class WireModel(BaseModel):
    """Base for all wire messages: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- client -> server ---


class JoinMessage(WireModel):
    type: Literal[ClientMessageType.JOIN] = ClientMessageType.JOIN
    name: str = DEFAULT_PLAYER_NAME

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, v: Any) -> Any:  # noqa: ANN401
        if v is None or v == "":
            return DEFAULT_PLAYER_NAME
        if isinstance(v, str):
            return v[:MAX_NAME_LENGTH]
        return v


class PositionMessage(WireModel):
    type: Literal[ClientMessageType.POSITION] = ClientMessageType.POSITION
    x: Coordinate
    y: Coordinate
    z: Coordinate
    rot_y: Coordinate


class BulletMessage(WireModel):
    type: Literal[ClientMessageType.BULLET] = ClientMessageType.BULLET
    origin: Any = None
    direction: Any = None
    weapon: str | None = None


class HitMessage(WireModel):
    type: Literal[ClientMessageType.HIT] = ClientMessageType.HIT
    target: str = Field(min_length=1, max_length=64)
    damage: float = Field(default=DEFAULT_HIT_DAMAGE, ge=0, allow_inf_nan=False)
    weapon: str | None = None

    @field_validator("damage", mode="before")
    @classmethod
    def _default_damage(cls, v: Any) -> Any:  # noqa: ANN401
        # a missing, null or zero damage counts as a default rifle hit
        if v is None or v == 0:
            return DEFAULT_HIT_DAMAGE
        return v


class ChatMessage(WireModel):
    type: Literal[ClientMessageType.CHAT] = ClientMessageType.CHAT
    message: str = ""

    @field_validator("message")
    @classmethod
    def _truncate(cls, v: str) -> str:
        return v[:MAX_CHAT_LENGTH]


class PingMessage(WireModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING
    time: Any = None  # opaque client timestamp, echoed back untouched


ClientMessage = JoinMessage | PositionMessage | BulletMessage | HitMessage | ChatMessage | PingMessage


# --- server -> client ---


class PlayerState(WireModel):
    """Public view of a player, as carried by welcome and sync rosters."""

    id: str
    name: str
    x: float
    y: float
    z: float
    rot_y: float
    health: int
    kills: int
    deaths: int

    @classmethod
    def from_player(cls, player: Player) -> PlayerState:
        return cls(
            id=player.id,
            name=player.name,
            x=player.x,
            y=player.y,
            z=player.z,
            rot_y=player.rot_y,
            health=player.health,
            kills=player.kills,
            deaths=player.deaths,
        )


class WelcomeMessage(WireModel):
    type: Literal[ServerMessageType.WELCOME] = ServerMessageType.WELCOME
    id: str
    instance_id: str
    players_count: int
    players: list[PlayerState]


class PlayerJoinMessage(WireModel):
    type: Literal[ServerMessageType.PLAYER_JOIN] = ServerMessageType.PLAYER_JOIN
    id: str
    name: str
    x: float
    y: float
    z: float


class PlayerMovedMessage(WireModel):
    type: Literal[ServerMessageType.POSITION] = ServerMessageType.POSITION
    id: str
    x: float
    y: float
    z: float
    rot_y: float


class BulletFiredMessage(WireModel):
    type: Literal[ServerMessageType.BULLET] = ServerMessageType.BULLET
    owner: str
    origin: Any
    direction: Any
    weapon: str


class DamageTakenMessage(WireModel):
    """Sent only to the victim; "local" tells the client the hit is on itself."""

    type: Literal[ServerMessageType.HIT] = ServerMessageType.HIT
    target: Literal["local"] = "local"
    damage: int
    attacker: str


class KillMessage(WireModel):
    type: Literal[ServerMessageType.KILL] = ServerMessageType.KILL
    killer: str
    killer_id: str
    victim: str
    victim_id: str
    weapon: str


class ChatRelayMessage(WireModel):
    type: Literal[ServerMessageType.CHAT] = ServerMessageType.CHAT
    name: str
    message: str


class PongMessage(WireModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG
    time: Any = None


class PlayerLeaveMessage(WireModel):
    type: Literal[ServerMessageType.PLAYER_LEAVE] = ServerMessageType.PLAYER_LEAVE
    id: str
    name: str


class RespawnMessage(WireModel):
    type: Literal[ServerMessageType.RESPAWN] = ServerMessageType.RESPAWN
    x: float
    y: float
    z: float


class SyncMessage(WireModel):
    type: Literal[ServerMessageType.SYNC] = ServerMessageType.SYNC
    players: list[PlayerState]


class HeartbeatMessage(WireModel):
    """Liveness probe; any frame the client sends afterwards marks it alive."""

    type: Literal[ServerMessageType.HEARTBEAT] = ServerMessageType.HEARTBEAT


_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(
    Annotated[ClientMessage, Field(discriminator="type")],
)

_CLIENT_TYPES = frozenset(ClientMessageType)


def is_client_message_type(value: object) -> bool:
    """Check whether a raw "type" value names a message the server handles."""
    return isinstance(value, str) and value in _CLIENT_TYPES


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Validate a decoded frame into a typed client message.

    Raises pydantic.ValidationError on unknown types or invalid fields.
    """
    return _client_message_adapter.validate_python(data)
