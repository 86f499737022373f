"""In-memory fixed-window rate limiter.

Tracks a request counter per key for the duration of one window.  The first
request for a key opens a window of ``window_seconds``; every later request
inside that window increments the counter, and the request that pushes the
counter past ``limit`` is denied.  Once the window ends the next request
replaces the entry with a fresh one.

Because windows are fixed, a caller can get up to ``2 * limit`` requests
through around a window boundary (``limit`` just before ``reset_at`` and
``limit`` just after).

State lives in process memory only, so limits are enforced per process.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Return the current wall-clock time in whole milliseconds since the epoch."""
    return int(time.time() * 1000)


class RateLimitExceeded(Exception):
    """Raised by the HTTP layer when a client exceeds the rate limit."""

    def __init__(self, retry_after: int = 60, limit: int | None = None, reset_at: int | None = None) -> None:
        self.retry_after = max(1, retry_after)
        self.limit = limit
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded. Try again in {self.retry_after} seconds.")

    @classmethod
    def from_decision(cls, decision: Decision, limit: int, now_ms: int) -> RateLimitExceeded:
        return cls(
            retry_after=retry_after_seconds(decision.reset_at, now_ms),
            limit=limit,
            reset_at=decision.reset_at,
        )


@dataclass(frozen=True)
class RatePolicy:
    """Admission policy: at most *limit* requests per *window_seconds*.

    Non-positive values are a configuration bug and are rejected here rather
    than clamped, since a clamped value would silently change the limit.
    """

    limit: int
    window_seconds: int

    def __post_init__(self) -> None:
        for name in ("limit", "window_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


@dataclass
class RateWindowEntry:
    key: str
    count: int
    reset_at: int


@dataclass(frozen=True)
class Decision:
    allowed: bool
    remaining: int
    reset_at: int


def retry_after_seconds(reset_at: int, now_ms: int) -> int:
    """Whole seconds until *reset_at*, rounded up, never less than 1."""
    return max(1, math.ceil((reset_at - now_ms) / 1000))


class FixedWindowRateLimiter:
    """Fixed-window counter keyed by an opaque string.

    Parameters
    ----------
    clock:
        Zero-argument callable returning milliseconds since the epoch.
        Defaults to the wall clock.

    ``check`` and ``sweep`` share one lock, so the read-increment-compare
    sequence is atomic even when called from threadpool workers.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or wall_clock_ms
        self._entries: dict[str, RateWindowEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._clock()

    def check(self, key: str, policy: RatePolicy) -> Decision:
        """Count one request for *key* and return the admission decision."""
        if not isinstance(key, str) or not key:
            raise ValueError("rate limit key must be a non-empty string")
        if not isinstance(policy, RatePolicy):
            raise TypeError(f"policy must be a RatePolicy, got {type(policy).__name__}")

        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()

            if entry is None or entry.reset_at <= now:
                reset_at = now + policy.window_ms
                self._entries[key] = RateWindowEntry(key=key, count=1, reset_at=reset_at)
                return Decision(allowed=True, remaining=policy.limit - 1, reset_at=reset_at)

            # Denied requests still count so the true request volume stays visible.
            entry.count += 1
            if entry.count > policy.limit:
                return Decision(allowed=False, remaining=0, reset_at=entry.reset_at)

            return Decision(
                allowed=True,
                remaining=policy.limit - entry.count,
                reset_at=entry.reset_at,
            )

    def sweep(self) -> None:
        """Drop every entry whose window has ended."""
        self.sweep_expired()

    def sweep_expired(self) -> int:
        """Drop every entry whose window has ended and return how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.reset_at <= now]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def peek(self, key: str) -> RateWindowEntry | None:
        """Return a copy of the entry tracked for *key*, if any."""
        with self._lock:
            entry = self._entries.get(key)
            return replace(entry) if entry is not None else None

    def reset(self) -> None:
        """Clear all tracked state (useful for tests)."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
