"""Monitor client liveness via application-level heartbeat probes."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from arena.messaging.types import HeartbeatMessage
from arena.session.registry import ConnectionRegistry

HEARTBEAT_INTERVAL_SECONDS = 30.0

logger = logging.getLogger(__name__)

# Called with the connection_id of a connection that missed a whole round.
EvictCallback = Callable[[str], Awaitable[None]]


class HeartbeatMonitor:
    """Evict connections that stay silent for a full heartbeat period.

    Each round clears every connection's liveness flag and sends a probe.
    Any frame from the client sets the flag again; a connection still
    flagged dead at the next round is evicted, so a half-open connection
    holds its slot for at most two periods.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        on_evict: EvictCallback,
        interval_seconds: float = HEARTBEAT_INTERVAL_SECONDS,
    ) -> None:
        self._registry = registry
        self._on_evict = on_evict
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic check task. Idempotent."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def check_once(self) -> int:
        """Run one heartbeat round. Return the number of evicted connections."""
        evicted = 0
        for session in self._registry.sessions():
            connection_id = session.connection_id
            if self._registry.get(connection_id) is None:
                continue  # went away while we were probing earlier connections
            if not self._registry.is_alive(connection_id):
                logger.info("heartbeat timeout for %s (%s), evicting", connection_id, session.player_id)
                await self._on_evict(connection_id)
                evicted += 1
                continue
            self._registry.mark_dead(connection_id)
            await self._registry.send(session.connection, HeartbeatMessage())
        return evicted

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.check_once()
            except Exception:
                logger.exception("heartbeat round failed")
