"""Periodic full-state reconciliation broadcast."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from arena.session.manager import SessionManager

logger = structlog.get_logger()

SYNC_INTERVAL_SECONDS = 5.0


class StateSyncBroadcaster:
    """Push the whole roster to every client on a fixed period.

    Per-event broadcasts are the primary update path; this loop heals
    clients that missed one, bounding their staleness to one period.
    """

    def __init__(self, session_manager: SessionManager, interval_seconds: float = SYNC_INTERVAL_SECONDS) -> None:
        self._session_manager = session_manager
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic sync task. Idempotent."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def sync_once(self) -> int:
        return await self._session_manager.broadcast_sync()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                sent = await self.sync_once()
            except Exception:
                logger.exception("state sync failed")
                continue
            if sent:
                logger.debug("state synced", recipients=sent)
