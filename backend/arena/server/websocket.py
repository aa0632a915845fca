from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from arena.messaging.protocol import ConnectionProtocol
from arena.server.rate_limit import TokenBucket

if TYPE_CHECKING:
    from arena.messaging.router import MessageRouter
    from arena.server.settings import ArenaServerSettings

logger = structlog.get_logger()


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def is_open(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_text(self) -> str:
        """Receive one frame. Binary frames are read as UTF-8 text."""
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ConnectionError(f"WebSocket closed with code {message.get('code', 1000)}")
        text = message.get("text")
        if text is not None:
            return text
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter, settings: ArenaServerSettings) -> None:
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    client = websocket.headers.get("x-forwarded-for") or (websocket.client.host if websocket.client else "unknown")
    logger.info("websocket connected", client=client)
    await router.handle_connect(connection)

    bucket = TokenBucket(rate=settings.message_rate, burst=settings.message_burst)

    try:
        while True:
            raw = await connection.receive_text()
            if not bucket.consume():
                # flooding clients get no feedback; the frame is simply dropped
                continue
            await router.handle_message(connection, raw)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected", dropped_frames=bucket.dropped)
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
