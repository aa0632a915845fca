from __future__ import annotations

import contextlib
import time
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route, WebSocketRoute

from arena.messaging.router import MessageRouter
from arena.server.settings import ArenaServerSettings
from arena.server.websocket import websocket_endpoint
from arena.session.heartbeat import HeartbeatMonitor
from arena.session.manager import SessionManager
from arena.session.sync import StateSyncBroadcaster
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request
    from starlette.websockets import WebSocket


def _status_payload(request: Request) -> dict:
    session_manager: SessionManager = request.app.state.session_manager
    settings: ArenaServerSettings = request.app.state.settings
    players = session_manager.store.players()
    return {
        "status": "ok",
        "instanceId": settings.instance_id,
        "players": len(players),
        "playerNames": [p.name for p in players],
        "connections": session_manager.connection_count,
        "uptime": time.monotonic() - request.app.state.started_at,
        "timestamp": int(time.time() * 1000),
    }


async def health(request: Request) -> JSONResponse:
    return JSONResponse(_status_payload(request))


async def list_players(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    players = session_manager.store.players()
    return JSONResponse(
        {
            "count": len(players),
            "players": [{"id": p.id, "name": p.name, "kills": p.kills, "deaths": p.deaths} for p in players],
        },
    )


async def index(_request: Request) -> PlainTextResponse:
    return PlainTextResponse("Combat Zone Game Server")


def create_app(
    settings: ArenaServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ArenaServerSettings()

    if session_manager is None:
        session_manager = SessionManager(
            respawn_delay_seconds=settings.respawn_delay_seconds,
            instance_id=settings.instance_id,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager, max_message_bytes=settings.max_message_bytes)

    heartbeat = HeartbeatMonitor(
        session_manager.registry,
        on_evict=session_manager.evict,
        interval_seconds=settings.heartbeat_interval_seconds,
    )
    state_sync = StateSyncBroadcaster(session_manager, interval_seconds=settings.sync_interval_seconds)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, settings)

    routes = [
        Route("/", index, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
        Route("/api/status", health, methods=["GET"]),
        Route("/api/players", list_players, methods=["GET"]),
        WebSocketRoute("/", ws_endpoint),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        heartbeat.start()
        state_sync.start()
        logger.info("game server ready", instance_id=settings.instance_id)
        yield
        await heartbeat.stop()
        await state_sync.stop()
        session_manager.shutdown()
        logger.info("game server stopped", instance_id=settings.instance_id)

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager
    app.state.heartbeat = heartbeat
    app.state.state_sync = state_sync
    app.state.started_at = time.monotonic()
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = ArenaServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
