"""In-process TTL cache that remembers the last value past expiry.

Fresh lookups go through cachetools.TTLCache; every value written is also
kept in a bounded LRU "stale" tier so callers that only need the last known
state (dashboard views, name lookups while Twitch is down) still get one.
Each service owns its own instances; nothing is shared across processes.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache  # type: ignore[import-untyped]

# Sentinel object to distinguish "not in cache" from cached None values
_MISSING = object()


class AsyncTTLCache:
    """TTL cache with a stale tier and per-key asyncio locks.

    *timer* drives expiry of the fresh tier and can be swapped for a fake
    clock in tests.
    """

    def __init__(
        self,
        maxsize: int = 128,
        ttl: float = 60.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._maxsize = maxsize
        self.ttl = ttl
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def get_lock(self, key: str) -> asyncio.Lock:
        """Lock serialising refreshes of *key*."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            if len(self._locks) > self._maxsize * 2:
                for k in [k for k, v in self._locks.items() if not v.locked()]:
                    if k != key and k not in self._stale:
                        del self._locks[k]
        return lock

    def get(self, key: str) -> Any:
        """Fresh value or ``_MISSING``."""
        return self._fresh.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def get_stale(self, key: str) -> Any:
        """Last value written for *key*, expired or not, or ``_MISSING``."""
        value = self._stale.get(key, _MISSING)
        if value is not _MISSING:
            self._stale.move_to_end(key)
        return value
