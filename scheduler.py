"""
scheduler.py
────────────
Single choke point for every call to the Discord API.

    rows = await scheduler.schedule("getBans::guild.bans.fetch", guild.fetch_bans)

Two knobs keep us under Discord's limits:
  • max_concurrent – how many calls may be in flight at once
  • min_interval   – minimum seconds between the starts of two calls that
                     share a job key

Calls with the same key run one at a time, in the order they were
scheduled.  Different keys have no ordering between them.

Errors from the operation are re-raised unchanged.  A RetryPolicy can be
plugged in to re-issue failed calls; every retry is logged.
"""

from __future__ import annotations
import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Re-issue an operation that raised one of `retry_on`."""

    attempts: int = 1  # total tries, 1 = no retry
    backoff: float = 1.0  # seconds before the first retry
    factor: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    def delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        return self.backoff * (self.factor ** (attempt - 1))


NO_RETRY = RetryPolicy()


class Scheduler:
    def __init__(
        self,
        max_concurrent: int = 1,
        min_interval: float = 0.0,
        retry: RetryPolicy = NO_RETRY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self.retry = retry
        self._clock = clock
        self._sleep = sleep
        self._semaphore: asyncio.Semaphore | None = None
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._last_start: dict[str, float] = {}
        self._calls: Counter[str] = Counter()

    # ── public API ────────────────────────────────────────────────────────

    async def schedule(self, job_key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation()` under the limits for `job_key` and return its result."""
        async with self._lock_for(job_key):
            attempt = 1
            while True:
                await self._wait_for_slot(job_key)
                try:
                    async with self._gate():
                        self._last_start[job_key] = self._clock()
                        self._calls[job_key] += 1
                        return await operation()
                except self.retry.retry_on as exc:
                    if attempt >= self.retry.attempts or not getattr(exc, "retryable", True):
                        raise
                    wait = self.retry.delay(attempt)
                    logger.warning(
                        "%s failed (%s), retry %d/%d in %.1fs",
                        job_key, exc, attempt, self.retry.attempts - 1, wait,
                    )
                    attempt += 1
                    await self._sleep(wait)

    def stats(self) -> dict[str, int]:
        """Number of calls issued per job key."""
        return dict(self._calls)

    # ── internals ─────────────────────────────────────────────────────────

    def _lock_for(self, job_key: str) -> asyncio.Lock:
        lock = self._key_locks.get(job_key)
        if lock is None:
            lock = self._key_locks[job_key] = asyncio.Lock()
        return lock

    def _gate(self) -> asyncio.Semaphore:
        # Created lazily so the semaphore binds to the running loop.
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        return self._semaphore

    async def _wait_for_slot(self, job_key: str) -> None:
        last = self._last_start.get(job_key)
        if last is None or self.min_interval <= 0:
            return
        remaining = last + self.min_interval - self._clock()
        if remaining > 0:
            logger.debug("%s throttled for %.2fs", job_key, remaining)
            await self._sleep(remaining)
