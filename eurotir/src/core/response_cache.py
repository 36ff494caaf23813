"""
Eurotir Assist - Response Cache
===============================
Time-boxed memoisation of end-to-end answers, keyed by normalised
question text.  This is a *text* cache, not a semantic one: two
paraphrases of the same question occupy two entries.

Invalidation is lazy (``get`` re-validates the timestamp) plus a
periodic ``sweep`` run by an asyncio background task to bound memory.

Usage:
    cache = ResponseCache(ttl_seconds=300)
    cache.start()                  # inside a running event loop
    cache.set("what are your opening hours?", reply)
    cache.get("what are your opening hours?")
    await cache.stop()
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable, Generic, TypeVar

from eurotir.config.settings import settings
from eurotir.src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ResponseCache(Generic[T]):
    """
    TTL cache with lazy expiry and an optional background sweeper.

    Parameters
    ----------
    ttl_seconds
        Entry lifetime.  Defaults to ``settings.CACHE_TTL_SECONDS``.
    sweep_interval
        Seconds between background sweeps.  Defaults to
        ``settings.CACHE_SWEEP_INTERVAL_SECONDS``.
    clock
        Monotonic time source; injectable for tests.
    """

    __slots__ = ("_ttl", "_sweep_interval", "_clock", "_entries", "_lock", "_sweeper")

    def __init__(self, ttl_seconds: float | None = None, sweep_interval: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl: float = ttl_seconds if ttl_seconds is not None else settings.CACHE_TTL_SECONDS
        self._sweep_interval: float = sweep_interval if sweep_interval is not None else settings.CACHE_SWEEP_INTERVAL_SECONDS
        self._clock = clock
        self._entries: dict[str, tuple[float, T]] = {}
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None


    @property
    def ttl(self) -> float:
        return self._ttl


    def get(self, key: str) -> T | None:
        """Return the cached value, or ``None`` on a miss (absent or expired)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            timestamp, value = entry
            if self._clock() - timestamp > self._ttl:
                del self._entries[key]
                logger.debug("[CACHE] Expired entry evicted on read.")
                return None
            return value


    def set(self, key: str, value: T) -> None:
        """Store *value* under *key*, overwriting any previous entry."""
        with self._lock:
            self._entries[key] = (self._clock(), value)


    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


    def sweep(self) -> int:
        """Remove every expired entry.  Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (ts, _) in self._entries.items() if now - ts > self._ttl]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("[CACHE] Sweep removed %d expired entr%s.", len(expired), "y" if len(expired) == 1 else "ies")
        return len(expired)


    def __len__(self) -> int:
        return len(self._entries)


    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    # ── Background sweeper ─────────────────────────────────────────────

    @property
    def is_sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()


    def start(self) -> None:
        """Launch the periodic sweep on the running event loop (idempotent)."""
        if self.is_sweeping:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever(), name="response-cache-sweeper")
        logger.info("[CACHE] Sweeper started (ttl=%.0fs, interval=%.0fs).", self._ttl, self._sweep_interval)


    async def stop(self) -> None:
        """Cancel the sweeper task and wait for it to finish."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("[CACHE] Sweeper stopped.")


    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("[CACHE] Sweep failed.")
