"""Fixed-Window Rate Limiter — in-process request budgets keyed by client.

Invariants:
    - At most `limit` hits per key inside one window of `window_seconds`
    - A key's window starts at its first hit and resets once it expires
    - check() never blocks; it returns a decision with retry_after for the caller
    - Clock is injectable (tests advance time without sleeping)

Design Decisions:
    - In-memory dict per limiter: single-process uvicorn deployment
      (ADR: no Redis; budgets reset on restart, acceptable for abuse throttling)
    - check() sweeps expired windows at most once per window length, so keys that
      never return (e.g. spoofed X-Forwarded-For values) do not accumulate
"""

import math
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int


@dataclass
class _Window:
    started_at: float
    count: int


class FixedWindowRateLimiter:
    """Counts hits per key in fixed windows."""

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._last_sweep = clock()

    def check(self, key: str) -> RateLimitDecision:
        """Register one hit for key and decide whether it is allowed."""
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self.prune()
        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now, count=0)
            self._windows[key] = window

        if window.count >= self.limit:
            retry_after = self.window_seconds - (now - window.started_at)
            return RateLimitDecision(
                allowed=False, remaining=0,
                retry_after_seconds=max(1, math.ceil(retry_after)),
            )

        window.count += 1
        return RateLimitDecision(
            allowed=True, remaining=self.limit - window.count,
            retry_after_seconds=0,
        )

    def prune(self) -> int:
        """Drop expired windows. Returns number removed."""
        now = self._clock()
        self._last_sweep = now
        expired = [
            k for k, w in self._windows.items()
            if now - w.started_at >= self.window_seconds
        ]
        for k in expired:
            del self._windows[k]
        return len(expired)

    def reset(self) -> None:
        self._windows.clear()


def client_key(
    forwarded_for: str | None, real_ip: str | None, peer: str | None,
) -> str:
    """Client identity: first X-Forwarded-For hop, then X-Real-IP, then peer."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return peer or "unknown"
