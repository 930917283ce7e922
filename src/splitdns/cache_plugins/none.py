from __future__ import annotations

from typing import Optional

from .base import CachePlugin, cache_aliases


@cache_aliases("none", "null", "disabled", "no_cache")
class NullCache(CachePlugin):
    """Cache plugin used when caching is not configured.

    Brief:
      Every lookup misses and every store is dropped.

    Inputs:
      - **config: Ignored.

    Outputs:
      - NullCache instance.
    """

    enabled = False

    def __init__(self, **config: object) -> None:
        pass

    def get(self, name: str) -> Optional[str]:
        return None

    def set(self, name: str, address: str) -> None:
        return None
