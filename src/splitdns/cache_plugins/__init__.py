"""Cache plugins.

Brief: Defines the CachePlugin interface and the address cache implementations.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

from .base import CACHE_TTL_SECONDS, CachePlugin, cache_aliases
from .in_memory_ttl import InMemoryTTLCache
from .none import NullCache
from .registry import load_cache_plugin

__all__ = [
    "CACHE_TTL_SECONDS",
    "CachePlugin",
    "InMemoryTTLCache",
    "NullCache",
    "cache_aliases",
    "load_cache_plugin",
]
