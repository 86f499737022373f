"""Background task that periodically reclaims expired rate-limit entries.

Expired entries are replaced lazily on the next ``check`` for the same key,
but keys that are never seen again (one-off client addresses) would stay in
memory forever without this sweep.  The sweep only bounds memory; admission
decisions never depend on it having run.
"""

from __future__ import annotations

import asyncio
import logging

from throttle.services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Run ``limiter.sweep()`` every *interval_seconds* on the event loop."""

    def __init__(self, limiter: FixedWindowRateLimiter, interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.limiter = limiter
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="rate-limit-sweeper")
        logger.info("Rate-limit sweeper started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Rate-limit sweeper stopped")

    def sweep_once(self) -> int:
        """Run one sweep pass and return how many entries it reclaimed."""
        removed = self.limiter.sweep_expired()
        logger.debug("Swept %d expired rate-limit entries", removed, extra={"removed": removed})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("Rate-limit sweep failed")
