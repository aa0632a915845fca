from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from arena.messaging.encoder import MAX_MESSAGE_BYTES, DecodeError, decode
from arena.messaging.types import (
    BulletMessage,
    ChatMessage,
    HitMessage,
    JoinMessage,
    PingMessage,
    PositionMessage,
    is_client_message_type,
    parse_client_message,
)

if TYPE_CHECKING:
    from arena.messaging.protocol import ConnectionProtocol
    from arena.session.manager import SessionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Decode inbound frames and route them to the session manager.

    Nothing a client sends can close its connection from here: malformed
    frames are logged and dropped, unknown message types are ignored, and
    no error replies are sent back.
    """

    def __init__(self, session_manager: SessionManager, *, max_message_bytes: int = MAX_MESSAGE_BYTES) -> None:
        self._session_manager = session_manager
        self._max_message_bytes = max_message_bytes

    async def handle_connect(self, connection: ConnectionProtocol) -> str:
        return self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)

    async def handle_message(self, connection: ConnectionProtocol, raw: str) -> None:
        # any frame at all proves the peer is still there
        self._session_manager.mark_alive(connection)

        try:
            data = decode(raw, max_bytes=self._max_message_bytes)
        except DecodeError as e:
            logger.warning("malformed frame from %s: %s", connection.connection_id, e)
            return

        if not is_client_message_type(data.get("type")):
            logger.debug("ignoring message type %r from %s", data.get("type"), connection.connection_id)
            return

        try:
            message = parse_client_message(data)
        except ValidationError as e:
            logger.warning("invalid %s message from %s: %s", data.get("type"), connection.connection_id, e)
            return

        try:
            await self._dispatch(connection, message)
        except Exception:
            logger.exception("error handling %s message from %s", message.type, connection.connection_id)

    async def _dispatch(
        self,
        connection: ConnectionProtocol,
        message: JoinMessage | PositionMessage | BulletMessage | HitMessage | ChatMessage | PingMessage,
    ) -> None:
        manager = self._session_manager
        if isinstance(message, JoinMessage):
            await manager.join(connection, message.name)
        elif isinstance(message, PositionMessage):
            await manager.update_position(connection, message.x, message.y, message.z, message.rot_y)
        elif isinstance(message, BulletMessage):
            await manager.fire_bullet(connection, message.origin, message.direction, message.weapon)
        elif isinstance(message, HitMessage):
            await manager.apply_hit(connection, message.target, message.damage, message.weapon)
        elif isinstance(message, ChatMessage):
            await manager.send_chat(connection, message.message)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection, message.time)
