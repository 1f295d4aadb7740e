"""
Single-flight caching for registry lookups.

A ``SingleFlightCache`` maps a key to the task fetching its value:
- The first caller for a key starts the fetch; callers arriving while it is
  pending await the same task, so at most one request per key is in flight
- A successful result stays cached until invalidated (there is no TTL)
- A failed or cancelled fetch is evicted before its error reaches any
  waiter, so the next call starts a fresh fetch
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def _failed(task: "asyncio.Future") -> bool:
    if not task.done():
        return False
    if task.cancelled():
        return True
    # Also marks the exception as retrieved when every waiter went away.
    return task.exception() is not None


class SingleFlightCache(Generic[K, V]):
    """
    Keyed registry of in-flight and completed fetches.
    """

    def __init__(self, name: str = "cache"):
        self.name = name
        self._tasks: Dict[K, "asyncio.Task[V]"] = {}

    async def get_or_fetch(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        """
        Return the cached value for ``key``, fetching it with ``factory`` once.
        """
        task = self._tasks.get(key)
        # The eviction callback may still be queued behind this call.
        if task is not None and _failed(task):
            task = None
        if task is None:
            logger.debug(f"{self.name}: fetching {key!r}")
            task = asyncio.ensure_future(factory())
            # Registered before any waiter's callback, so eviction happens first.
            task.add_done_callback(lambda t, key=key: self._on_done(key, t))
            self._tasks[key] = task
        elif not task.done():
            logger.debug(f"{self.name}: joining in-flight fetch for {key!r}")
        # A cancelled waiter must not cancel the fetch shared with the others.
        return await asyncio.shield(task)

    def _on_done(self, key: K, task: "asyncio.Task[V]") -> None:
        if _failed(task) and self._tasks.get(key) is task:
            logger.debug(f"{self.name}: evicting failed fetch for {key!r}")
            del self._tasks[key]

    def invalidate(self, key: K) -> None:
        """Forget ``key``. A pending fetch keeps running for its current waiters."""
        self._tasks.pop(key, None)

    def clear(self) -> None:
        self._tasks.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
