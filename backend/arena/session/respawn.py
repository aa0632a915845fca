"""Schedule delayed respawns for dead players."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

RESPAWN_DELAY_SECONDS = 3.0

# Callback type: (player_id) -> Awaitable[None]
RespawnCallback = Callable[[str], Awaitable[None]]


class RespawnScheduler:
    """Keep at most one pending respawn task per player identifier.

    The scheduler only owns task lifecycle. Whether the player still exists
    when the delay elapses is for the callback to check: a disconnect cancels
    the task, but a callback that is already running must not assume the
    player is still there.
    """

    def __init__(self, on_respawn: RespawnCallback, delay_seconds: float = RESPAWN_DELAY_SECONDS) -> None:
        self._on_respawn = on_respawn
        self._delay_seconds = delay_seconds
        self._tasks: dict[str, asyncio.Task[None]] = {}  # player_id -> pending task

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def is_pending(self, player_id: str) -> bool:
        return player_id in self._tasks

    def schedule(self, player_id: str) -> None:
        """Schedule a respawn, replacing any respawn already pending for the player."""
        self.cancel(player_id)
        self._tasks[player_id] = asyncio.create_task(self._run(player_id))

    def cancel(self, player_id: str) -> None:
        task = self._tasks.pop(player_id, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for player_id in list(self._tasks):
            self.cancel(player_id)

    async def _run(self, player_id: str) -> None:
        try:
            await asyncio.sleep(self._delay_seconds)
            # drop our own entry before firing so is_pending() is False inside the callback
            if self._tasks.get(player_id) is asyncio.current_task():
                del self._tasks[player_id]
            await self._on_respawn(player_id)
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("respawn callback failed for %s", player_id)
