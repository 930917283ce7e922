from __future__ import annotations

import difflib
from typing import Dict, Optional, Type

from .base import CachePlugin
from .in_memory_ttl import InMemoryTTLCache
from .none import NullCache
from .redis_cache import RedisCache

# Backend used when a cache section is present but names no module.
DEFAULT_CACHE_MODULE = "redis"

BACKENDS = (RedisCache, InMemoryTTLCache, NullCache)


def _normalize(alias: str) -> str:
    return str(alias).strip().lower().replace("-", "_")


def _build_alias_table() -> Dict[str, Type[CachePlugin]]:
    table: Dict[str, Type[CachePlugin]] = {}
    for cls in BACKENDS:
        for alias in cls.aliases:
            key = _normalize(alias)
            if key in table:
                raise ValueError(
                    f"Cache alias '{key}' claimed by both "
                    f"{table[key].__name__} and {cls.__name__}"
                )
            table[key] = cls
    return table


CACHE_BACKENDS: Dict[str, Type[CachePlugin]] = _build_alias_table()


def get_cache_plugin_class(alias: str) -> Type[CachePlugin]:
    """Brief: Map a configured cache module alias to its backend class.

    Inputs:
      - alias: e.g. "redis", "valkey", "memory", "none" (case and '-'/'_'
        insensitive).

    Outputs:
      - CachePlugin subclass.

    Raises:
      - KeyError: unknown alias; the message lists close matches.
    """

    key = _normalize(alias)
    try:
        return CACHE_BACKENDS[key]
    except KeyError:
        suggestions = difflib.get_close_matches(key, list(CACHE_BACKENDS), n=3)
        raise KeyError(
            f"Unknown cache module '{alias}'. "
            f"Known: {', '.join(sorted(CACHE_BACKENDS))}. "
            f"Did you mean: {suggestions}"
        ) from None


def load_cache_plugin(cfg: Optional[object]) -> CachePlugin:
    """Brief: Build the configured cache plugin.

    Inputs:
      - cfg: Cache config. Supported forms:
        - None: caching disabled (NullCache).
        - str: backend alias.
        - dict: {"module": <str>, "config": <dict>}; a missing module means
          redis, an explicit null module means no cache.

    Outputs:
      - CachePlugin instance.

    Example:
      cache:
        module: redis
        config:
          host: 127.0.0.1
    """

    if cfg is None:
        return NullCache()

    if isinstance(cfg, str):
        return get_cache_plugin_class(cfg)()

    if not isinstance(cfg, dict):
        raise TypeError("cache config must be a mapping, string, or null")

    if "module" in cfg and cfg["module"] is None:
        return NullCache()

    module = str(cfg.get("module") or "").strip() or DEFAULT_CACHE_MODULE
    subcfg = cfg.get("config")
    if not isinstance(subcfg, dict):
        subcfg = {}
    return get_cache_plugin_class(module)(**subcfg)
