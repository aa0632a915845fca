"""Per-connection flood guard for inbound WebSocket frames.

Clients stream position updates many times a second, so the guard only
exists to stop a runaway or hostile client from monopolizing the room lock.
"""

import time


class TokenBucket:
    """Admit frames at a sustained `rate` per second with room for `burst` extra.

    Each admitted frame spends one token; tokens accrue continuously with
    elapsed monotonic time and never exceed `burst`. Refused frames are
    counted in `dropped` so the endpoint can log how much a client flooded.
    """

    def __init__(self, rate: float, burst: int) -> None:
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._last_refill = time.monotonic()
        self.dropped = 0

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._last_refill = now
        self._tokens = min(float(self._burst), self._tokens + elapsed * self._rate)

    def consume(self) -> bool:
        """Spend one token for an inbound frame. Return False when the frame must be dropped."""
        self._refill()
        if self._tokens < 1.0:
            self.dropped += 1
            return False
        self._tokens -= 1.0
        return True
