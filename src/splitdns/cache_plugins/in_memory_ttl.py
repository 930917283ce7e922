from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from cachetools import TTLCache

from .base import CACHE_TTL_SECONDS, CachePlugin, cache_aliases


@cache_aliases("in_memory_ttl", "memory", "ttl")
class InMemoryTTLCache(CachePlugin):
    """In-process address cache backed by cachetools.TTLCache.

    Brief:
      Useful when no Redis server is available. Entries expire a fixed
      ``ttl`` seconds after they were written. Access is serialized with a
      lock because TTLCache is not thread-safe.

    Inputs:
      - **config:
          - maxsize (int): maximum number of names kept (default 10000).
          - ttl (int): entry lifetime in seconds (default 12 hours).
          - timer (callable): clock returning seconds; tests pass a fake clock.

    Outputs:
      - InMemoryTTLCache instance.

    Example:
      cache:
        module: in_memory_ttl
        config:
          maxsize: 5000
    """

    def __init__(self, **config: object) -> None:
        try:
            maxsize = int(config.get("maxsize", 10000) or 10000)
        except (TypeError, ValueError):
            maxsize = 10000
        try:
            self.ttl = int(config.get("ttl", CACHE_TTL_SECONDS) or CACHE_TTL_SECONDS)
        except (TypeError, ValueError):
            self.ttl = CACHE_TTL_SECONDS

        timer: Callable[[], float] = config.get("timer") or time.monotonic  # type: ignore[assignment]
        self._cache: TTLCache = TTLCache(maxsize=max(1, maxsize), ttl=self.ttl, timer=timer)
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            return self._cache.get(name)

    def set(self, name: str, address: str) -> None:
        with self._lock:
            self._cache[name] = str(address)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
